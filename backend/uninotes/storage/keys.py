"""
Storage keys. Values are the same strings the browser build used so an exported
localStorage dump can be loaded as-is.
"""

POSTS = "uninotes_all_posts"
USERS = "uninotes_users"
ADMIN_LOGS = "uninotes_admin_logs"
SESSION_USER = "uninotes_user"
SCHEMA_VERSION = "uninotes_schema_version"
# Notes removed by cleanup are moved here rather than dropped
QUARANTINED_POSTS = "uninotes_quarantined_posts"

# Pre-v1 layouts, merged into POSTS by the first migration
LEGACY_UPLOADED_NOTES = "uninotes_uploaded_notes"
LEGACY_USER_UPLOADS = "uninotes_user_uploads"
