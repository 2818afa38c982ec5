"""
Core processing modules for burned area analysis.

Author: Diego Bengochea
"""
