"""
Single sign-on backend shared by the Math Thinking applications.

The package holds the SSO user store, the authentication service and its
FastAPI routes, plus the one-off routines that reconcile Encompass and VMT
users with the SSO store during the migration.
"""
