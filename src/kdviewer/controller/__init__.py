"""
The CONTROLLER layer owns the index lifecycle: rebuild, query, partition.
"""
