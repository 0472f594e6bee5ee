"""
Command-line interface for labelimport.
"""
