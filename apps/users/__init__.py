"""Users app package.

Defines the email-login user model with the admin, staff and client roles
used by the studio workflows. Use ``apps.users.models.CustomUser`` as the
AUTH_USER_MODEL throughout the project.
"""
