"""
HubPress Modules
================

Flask blueprint modules making up the blog platform.
"""

__all__ = ['analytics', 'auth', 'blog', 'email', 'subscribers', 'users']
