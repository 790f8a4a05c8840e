"""
Repositories exposing blog operations on top of a session.
"""

from __future__ import annotations

from typing import Any, List

from inkwell.persistence import Repository, SaveResult

from .models import Comment, Post


class PostRepository(Repository[Post]):
    """
    Posts and their comments.

    Comments always come back in creation order (comment id ascending).
    """

    model = Post

    def create(self, *, title: Any = None, body: str = "") -> SaveResult:
        return self.session.save(Post(title=title, body=body))

    def comments_for(self, post: Post) -> List[Comment]:
        return self.session.related(post, "comments")

    def add_comment(self, post: Post, **values: Any) -> SaveResult:
        if post.pk is None:
            raise ValueError("Save the post before adding comments to it.")
        if post._session is None:
            post._session = self.session
        return post.comments.create(**values)
