# Supabase table: whatsapp_connections
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

whatsapp_connections:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, not null)
- name: text
- provider: text - values: evolution, meta
- instance_name: text (nullable) - Evolution instance name
- api_url: text (nullable)
- webhook_secret: text (nullable)
- status: text - values: pending, connected, disconnected
- qr_code: text (nullable)
- created_at: timestamp (default: now())

Invariant: every Evolution instance maps to exactly one workspace
(workspaces.instance_name) and vice versa.
"""

PROVIDER_EVOLUTION = "evolution"

# Used as a filter value that no row matches, so delete() affects every row
NIL_UUID = "00000000-0000-0000-0000-000000000000"
