# Supabase table: deployments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- version: text (not null) - generated label, v{epoch_ms}
- status: text (not null, default: 'pending') - values: pending, building, success, failed
- deploy_target: text (not null) - values: vercel, netlify, cloudflare, custom
- deploy_url: text (nullable) - set only on success
- build_time: integer (nullable) - milliseconds from start of build to terminal state
- metadata: jsonb (nullable) - provider response details (remote deployment id, site id, ...)
- logs: text (nullable) - human-readable summary of the attempt
- deployed_by: uuid (foreign key to users.id, nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- completed_at: timestamp (nullable) - set when a terminal status is written

Rows are never deleted by the pipeline; a retry is a new row.
"""
