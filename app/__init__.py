"""AIYA affiliate registration service.

Having this file ensures the 'app' directory is recognized as a standard
Python package during test discovery and when installed with pip.
"""

__all__: list[str] = []
