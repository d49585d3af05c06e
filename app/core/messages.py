"""User-facing error messages and text returned by the engine."""

# Generic
INTERNAL_ERROR = "Something went wrong. Please try again."
NOT_FOUND_OR_HIDDEN = "Resource not found"
PERMISSION_DENIED = "You do not have permission to perform this action"
AUTHENTICATION_REQUIRED = "You must be signed in to perform this action"

# Authentication
AUTH_TOKEN_INVALID = "Could not validate credentials"
AUTH_TOKEN_PAYLOAD_INVALID = "Invalid token payload"
AUTH_USER_ID_INVALID = "Invalid user ID format"
AUTH_USER_NOT_FOUND_OR_INACTIVE = "User not found or inactive"

# Access control reasons
ACCESS_NOT_A_MEMBER = "You are not a member of this workspace"
ACCESS_INSUFFICIENT_ROLE = "Your workspace role does not allow this action"
ACCESS_ROLE_CEILING = "You cannot manage a member whose role is equal to or above your own"

# Workspaces
WORKSPACE_NAME_INVALID = "Workspace name must be between 2 and 100 characters"
WORKSPACE_DESCRIPTION_TOO_LONG = "Workspace description must be less than 500 characters"

# Members
MEMBER_ALREADY_EXISTS = "User is already a member of this workspace"
MEMBER_NOT_FOUND = "Member not found"
MEMBER_USER_NOT_FOUND = "User not found"
MEMBER_CANNOT_REMOVE_SELF = "Cannot remove yourself from the workspace"
MEMBER_ROLE_INVALID = "Invalid role. Must be one of: ADMIN, EDITOR, MEMBER, VIEWER"

# Prompts
PROMPT_TITLE_INVALID = "Title must be between 3 and 100 characters"
PROMPT_DESCRIPTION_TOO_LONG = "Description must be less than 500 characters"
PROMPT_SLUG_INVALID = "Slugs must be at least 3 characters of lowercase letters, digits and hyphens"
PROMPT_SLUG_CONFLICT = "A prompt with this URL already exists in the workspace"
PROMPT_CATEGORY_NOT_IN_WORKSPACE = "Category not found in workspace"
PROMPT_WORKSPACE_MISMATCH = "Prompt does not belong to this workspace"
PROMPT_PAGINATION_INVALID = "Page must be at least 1 and limit between 1 and 100"
PROMPT_LINEAGE_IMMUTABLE = "Fork lineage cannot be changed once set"

# Blocks
BLOCK_TYPE_INVALID = "Invalid block type"
BLOCK_INDENT_INVALID = "Indent level must be between 0 and 10"
BLOCK_POSITION_INVALID = "Invalid block position"
BLOCK_PARENT_INVALID = "Parent block must belong to the same prompt"
BLOCK_REORDER_EMPTY = "At least one block position is required"
BLOCK_REORDER_DUPLICATE = "Block positions and block IDs must be distinct"
BLOCK_REORDER_UNKNOWN_BLOCK = "Block does not belong to this prompt"

# Versions
VERSION_IMMUTABLE = "Prompt versions and activity records cannot be modified"

# Categories
CATEGORY_NAME_INVALID = "Category name must be between 2 and 50 characters"
CATEGORY_DESCRIPTION_TOO_LONG = "Description must be less than 200 characters"
CATEGORY_SLUG_CONFLICT = "Category slug already exists in workspace"
CATEGORY_PARENT_INVALID = "Parent category not found in workspace"
CATEGORY_PARENT_CYCLE = "A category cannot be nested inside itself"

# Templates
TEMPLATE_NOT_FOUND = "Template not found"
TEMPLATE_SORT_INVALID = "Sort must be one of: popular, recent, alphabetical, favorites"

# Invitations
INVITATION_NOT_FOUND = "Invitation not found or no longer valid"
INVITATION_ALREADY_PENDING = "An invitation is already pending for this email"
INVITATION_EMAIL_INVALID = "A valid email address is required"
INVITATION_EMAIL_MISMATCH = "This invitation was sent to a different email address"
INVITATION_EXPIRED = "This invitation has expired"
INVITATION_MESSAGE_TOO_LONG = "Invitation message must be less than 500 characters"
