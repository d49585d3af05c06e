from .user import User  # noqa: F401
from .activity import Activity, ActivityType  # noqa: F401
from .category import Category  # noqa: F401
from .prompt import Block, BlockType, Favorite, Prompt, PromptVersion  # noqa: F401

# Workspace models live in app.workspaces.models (imported by app.workspaces)
