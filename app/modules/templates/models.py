# Supabase tables: templates, template_versions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

templates
- id: uuid (primary key)
- name: text (not null)
- slug: text (not null, unique)
- category: text (not null)
- description: text (nullable)
- config_schema: jsonb (nullable) - {"fields": [{key, label, type, default, required, options}]}
- version: integer (not null, default: 0) - 0 means no bundle uploaded yet
- file_path: text (nullable) - relative to storage_root, e.g. templates/{id}/v{version}
- status: text (not null, default: 'draft') - values: draft, active, deprecated
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

template_versions (immutable, one row per upload)
- id: uuid (primary key)
- template_id: uuid (foreign key to templates.id, not null)
- version: integer (not null), unique together with template_id
- file_path: text (not null)
- file_count: integer (not null)
- file_size: bigint (not null) - bytes of the uploaded archive
- archive_path: text (nullable) - s3:// URI of the raw bundle when archiving is enabled
- uploaded_by: uuid (nullable)
- created_at: timestamp (default: now())
"""
