"""
Command-line maintenance tools
"""
