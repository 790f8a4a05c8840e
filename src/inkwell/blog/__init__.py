"""
Blog models built on Inkwell: posts with a required title and their comments.
"""

from .app import bootstrap_session, build_registry
from .models import Comment, Post
from .repositories import PostRepository

__all__ = [
    "Comment",
    "Post",
    "PostRepository",
    "bootstrap_session",
    "build_registry",
]
