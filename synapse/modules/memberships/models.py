# Supabase tables: workspaces, profiles, workspace_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

workspaces:
- id: uuid (primary key)
- name: text (not null)
- owner_id: uuid (foreign key to auth.users.id)
- instance_name: text (nullable) - Evolution instance bound to this workspace
- created_at: timestamp (default: now())

profiles:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id) - created by the signup trigger
- email: text
- full_name: text (nullable)
- current_workspace_id: uuid (foreign key to workspaces.id, nullable)
- onboarding_completed: boolean (default: false)
- created_at: timestamp (default: now())

workspace_members:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, not null)
- user_id: uuid (foreign key to auth.users.id, not null)
- role: text (not null) - values: owner, admin, member, seller
- created_at: timestamp (default: now())
- unique constraint on (workspace_id, user_id) is NOT enforced in production

Invariant: every profile with a non-null current_workspace_id has exactly one
workspace_members row for (current_workspace_id, <profile identity>).
"""

WORKSPACE_ROLES = ("owner", "admin", "member", "seller")

PROFILE_IDENTITY_KEYS = ("user_id", "id")
