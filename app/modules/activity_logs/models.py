# Supabase table: activity_logs
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- user_id: uuid (nullable) - actor, null for system actions
- action: text (not null) - dotted verb, e.g. template.uploaded, template.cloned, project.deployed
- entity_type: text (nullable) - template, project
- entity_id: uuid (nullable)
- project_id: uuid (foreign key to projects.id, nullable)
- details: text (nullable) - human-readable summary
- created_at: timestamp (default: now())
"""
