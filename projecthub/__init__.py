"""
ProjectHub

Multi-tenant project management backend. Companies own users and
projects; users reach projects through per-project memberships.
"""

__version__ = "1.0.0"
