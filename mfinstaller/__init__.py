"""
mfinstaller - create new MiniFramework PHP projects from the upstream template.
"""

__version__ = "1.0.0"
