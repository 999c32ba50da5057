"""
The VIEW layer: Qt windows, panels and the PyVista scene.
"""
