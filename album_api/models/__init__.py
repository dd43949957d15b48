"""
Database models package.
All models are exported here for easy import.
"""
from album_api.models.user import User
from album_api.models.album import Album, AlbumShare
from album_api.models.image import Image, ImageTag
from album_api.models.comment import Comment

__all__ = ["User", "Album", "AlbumShare", "Image", "ImageTag", "Comment"]
