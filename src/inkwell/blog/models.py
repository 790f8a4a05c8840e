"""
Data models for the Inkwell blog.
"""

from __future__ import annotations

from inkwell.core import (
    DateTimeField,
    ForeignKey,
    HasMany,
    Model,
    OnDelete,
    StringField,
    TextField,
)


class Post(Model):
    title = StringField(required=True, max_length=255)
    body = TextField(default="")
    created_at = DateTimeField(auto_now_add=True)
    updated_at = DateTimeField(auto_now=True)

    comments = HasMany("Comment", foreign_key="post", on_delete=OnDelete.RESTRICT)


class Comment(Model):
    commenter = StringField(max_length=120)
    body = TextField(required=True)
    post = ForeignKey("Post", db_column="post_id")
    created_at = DateTimeField(auto_now_add=True)
    updated_at = DateTimeField(auto_now=True)
