"""
Executable scripts for burned area mapping.

Author: Diego Bengochea
"""
