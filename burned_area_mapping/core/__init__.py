"""
Core processing modules for burned area mapping.

Author: Diego Bengochea
"""
