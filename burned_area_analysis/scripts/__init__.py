"""
Executable scripts for burned area analysis.

Author: Diego Bengochea
"""
