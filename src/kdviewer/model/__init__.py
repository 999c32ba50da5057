"""
The MODEL layer contains the spatial index and the data it is built from.
It has NO knowledge of the GUI (Qt). PyVista is used only to supply points.
"""
