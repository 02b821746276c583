from app.schemas.common import Pagination, Message
from app.schemas.user import (
    User,
    UserCreate,
    UserLogin,
    UserProfileUpdate,
    AdminUserUpdate,
    UserPublic,
)
from app.schemas.category import Category, CategoryCreate, CategoryUpdate
from app.schemas.comment import (
    Comment,
    CommentCreate,
    CommentWithReplies,
    PendingComment,
)
from app.schemas.post import (
    Post,
    PostCreate,
    PostUpdate,
    PostList,
    PostSummary,
    PostWithComments,
)
from app.schemas.topic import (
    Topic,
    TopicSubmit,
    TopicStatusUpdate,
    TopicScheduleRequest,
    TopicResponse,
    TopicList,
)
from app.schemas.generation import (
    Schedule,
    ScheduleCreate,
    ScheduleDetail,
    ScheduleResponse,
    ScheduleList,
    ScheduleResult,
    CronRunSummary,
)

__all__ = [
    "Pagination",
    "Message",
    "User",
    "UserCreate",
    "UserLogin",
    "UserProfileUpdate",
    "AdminUserUpdate",
    "UserPublic",
    "Category",
    "CategoryCreate",
    "CategoryUpdate",
    "Comment",
    "CommentCreate",
    "CommentWithReplies",
    "PendingComment",
    "Post",
    "PostCreate",
    "PostUpdate",
    "PostList",
    "PostSummary",
    "PostWithComments",
    "Topic",
    "TopicSubmit",
    "TopicStatusUpdate",
    "TopicScheduleRequest",
    "TopicResponse",
    "TopicList",
    "Schedule",
    "ScheduleCreate",
    "ScheduleDetail",
    "ScheduleResponse",
    "ScheduleList",
    "ScheduleResult",
    "CronRunSummary",
]
