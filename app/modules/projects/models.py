# Supabase table: projects
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- name: text (not null)
- slug: text (not null, unique) - also used as the hosting provider site name
- client_id: uuid (foreign key to clients.id, not null)
- template_id: uuid (foreign key to templates.id, not null)
- config: jsonb (nullable) - overrides keyed by the template's config_schema field keys
- deploy_target: text (nullable) - values: vercel, netlify, cloudflare, custom
- deploy_url: text (nullable) - URL of the most recent successful deployment
- status: text (not null, default: 'draft') - values: draft, in_progress, ready, deployed, archived
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
