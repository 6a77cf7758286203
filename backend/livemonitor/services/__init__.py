"""
Services - registry, classification, sweeping and the I/O collaborators
around them.
"""
