"""
UniNotes: course-notes sharing storage core and JSON API.
"""
__version__ = "0.1.0"
