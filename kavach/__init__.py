"""
Kavach Zone Engine.

Safety-incident reporting backend: reports are approved by administrators and
aggregate into unsafe zones with a derived risk level.
"""

__version__ = "0.1.0"
