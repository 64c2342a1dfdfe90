import pytest

from app.modules.templates import local_storage
from app.modules.templates.local_storage import TemplateStorage
from app.modules.templates.schemas import TemplateCreate
from app.modules.templates.service import TemplateService
from tests.fakes import FakeSupabaseClient, make_zip


@pytest.fixture
def storage(tmp_path, monkeypatch):
    """TemplateStorage rooted in a temp dir, also installed as the process-wide instance."""
    store = TemplateStorage(root=tmp_path / "storage")
    monkeypatch.setattr(local_storage, "_storage", store)
    return store


@pytest.fixture
def supabase():
    return FakeSupabaseClient()


@pytest.fixture
def template_service(supabase, storage):
    return TemplateService(supabase, storage=storage)


@pytest.fixture
def seed_template(template_service):
    def _seed(files=None, slug="landing", schema=None):
        template = template_service.create_template(TemplateCreate(
            name="Landing",
            slug=slug,
            category="marketing",
            config_schema={"fields": schema} if schema else None,
        ))
        if files is not None:
            template_service.upload_bundle(template.id, "site.zip", make_zip(files), "user-1")
        return template_service.get_template(template.id)
    return _seed


@pytest.fixture
def seed_project(supabase):
    def _seed(template_id, config=None, deploy_target="netlify", slug="acme-site"):
        result = supabase.table("projects").insert({
            "name": "Acme",
            "slug": slug,
            "template_id": template_id,
            "config": config or {},
            "deploy_target": deploy_target,
            "status": "ready",
        }).execute()
        return result.data[0]["id"]
    return _seed
