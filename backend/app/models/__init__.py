from .user import User
from .category import Category
from .post import Post
from .comment import Comment
from .topic import Topic
from .generation_schedule import GenerationSchedule

__all__ = [
    "User",
    "Category",
    "Post",
    "Comment",
    "Topic",
    "GenerationSchedule",
]
