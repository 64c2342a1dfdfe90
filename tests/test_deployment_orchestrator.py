import pytest

from app.core.exceptions import DeployError, InvalidStateError, NotFoundError
from app.modules.builds.service import BuildService
from app.modules.deployments.orchestrator import DeploymentOrchestrator
from app.modules.deployments.schemas import DeploymentStatus
from app.modules.deployments.service import DeploymentService, next_version_label
from app.modules.deployments.state_machine import TransitionNotAllowed, check_transition
from app.modules.projects.schemas import DeployTarget
from tests.fakes import SITE_FILES, RecordingAdapter


@pytest.fixture
def adapter():
    return RecordingAdapter()


@pytest.fixture
def orchestrator(supabase, storage, adapter):
    return DeploymentOrchestrator(
        supabase,
        {DeployTarget.NETLIFY: adapter},
        build_service=BuildService(supabase, storage=storage),
    )


def _project_row(supabase, project_id):
    return next(row for row in supabase.rows("projects") if row["id"] == project_id)


def test_successful_deploy(orchestrator, adapter, supabase, seed_template, seed_project):
    template = seed_template(SITE_FILES)
    project_id = seed_project(template.id, config={"title": "My Site"})

    deployment = orchestrator.trigger_deploy(project_id, "user-1")

    assert deployment.status == DeploymentStatus.SUCCESS
    assert deployment.deploy_url == "https://acme-site.netlify.app"
    assert deployment.deploy_target == DeployTarget.NETLIFY
    assert deployment.deployed_by == "user-1"
    assert deployment.version.startswith("v")
    assert deployment.build_time is not None and deployment.build_time >= 0
    assert deployment.completed_at is not None
    assert deployment.metadata == {"remote_deployment_id": "remote-1", "provider": "netlify"}
    assert deployment.logs == (
        f"Build completed in {deployment.build_time}ms. Deployed to https://acme-site.netlify.app"
    )

    assert adapter.calls[0]["site_name"] == "acme-site"
    assert "<h1>My Site</h1>" in adapter.calls[0]["index_html"]

    project = _project_row(supabase, project_id)
    assert project["deploy_url"] == "https://acme-site.netlify.app"
    assert project["status"] == "deployed"

    activity = supabase.rows("activity_logs")[-1]
    assert activity["action"] == "project.deployed"
    assert activity["project_id"] == project_id
    assert activity["details"] == "Deployed to netlify: https://acme-site.netlify.app"


def test_failed_deploy_records_failure_and_leaves_project_untouched(
    orchestrator, adapter, supabase, seed_template, seed_project
):
    adapter.error = DeployError("netlify", "quota exceeded")
    template = seed_template(SITE_FILES)
    project_id = seed_project(template.id)

    with pytest.raises(DeployError, match="quota exceeded"):
        orchestrator.trigger_deploy(project_id, "user-1")

    [deployment] = supabase.rows("deployments")
    assert deployment["status"] == "failed"
    assert deployment["build_time"] >= 0
    assert deployment["logs"] == (
        f"Deployment failed after {deployment['build_time']}ms: netlify deploy failed: quota exceeded"
    )
    assert deployment["completed_at"] is not None

    project = _project_row(supabase, project_id)
    assert project.get("deploy_url") is None
    assert project["status"] == "ready"
    assert all(row["action"] != "project.deployed" for row in supabase.rows("activity_logs"))


def test_build_failure_ends_in_failed_state(orchestrator, adapter, supabase, seed_template, seed_project):
    template = seed_template()
    project_id = seed_project(template.id)

    with pytest.raises(InvalidStateError, match="no uploaded files"):
        orchestrator.trigger_deploy(project_id, "user-1")

    assert [row["status"] for row in supabase.rows("deployments")] == ["failed"]
    assert adapter.calls == []


def test_failed_success_write_ends_in_failed_state(
    orchestrator, adapter, supabase, seed_template, seed_project, monkeypatch
):
    template = seed_template(SITE_FILES)
    project_id = seed_project(template.id)
    service = orchestrator.deployment_service
    real_transition = service.transition

    def transition(deployment_id, status, **fields):
        if status == DeploymentStatus.SUCCESS:
            raise RuntimeError("write timed out")
        return real_transition(deployment_id, status, **fields)

    monkeypatch.setattr(service, "transition", transition)

    with pytest.raises(RuntimeError, match="write timed out"):
        orchestrator.trigger_deploy(project_id, "user-1")

    [deployment] = supabase.rows("deployments")
    assert deployment["status"] == "failed"
    assert deployment["logs"].startswith(f"Deployment failed after {deployment['build_time']}ms")
    assert _project_row(supabase, project_id)["status"] == "ready"


def test_project_update_failure_keeps_successful_deployment(
    orchestrator, adapter, supabase, seed_template, seed_project
):
    template = seed_template(SITE_FILES)
    project_id = seed_project(template.id)
    supabase.fail_on("projects", "update", RuntimeError("projects unavailable"))

    deployment = orchestrator.trigger_deploy(project_id, "user-1")

    assert deployment.status == DeploymentStatus.SUCCESS
    assert [row["status"] for row in supabase.rows("deployments")] == ["success"]


def test_project_without_target_creates_no_record(orchestrator, supabase, seed_template, seed_project):
    template = seed_template(SITE_FILES)
    project_id = seed_project(template.id, deploy_target=None)

    with pytest.raises(InvalidStateError, match="no deploy target"):
        orchestrator.trigger_deploy(project_id, "user-1")

    assert supabase.rows("deployments") == []


def test_unknown_project(orchestrator, supabase):
    with pytest.raises(NotFoundError, match="Project not found"):
        orchestrator.trigger_deploy("missing", "user-1")

    assert supabase.rows("deployments") == []


def test_missing_template_creates_no_record(orchestrator, supabase, seed_project):
    project_id = seed_project("deleted-template")

    with pytest.raises(NotFoundError, match="Template not found"):
        orchestrator.trigger_deploy(project_id, "user-1")

    assert supabase.rows("deployments") == []


def test_target_without_adapter_ends_in_failed_state(orchestrator, supabase, seed_template, seed_project):
    template = seed_template(SITE_FILES)
    project_id = seed_project(template.id, deploy_target="cloudflare")

    with pytest.raises(InvalidStateError, match="'cloudflare' is not supported"):
        orchestrator.trigger_deploy(project_id, "user-1")

    [deployment] = supabase.rows("deployments")
    assert deployment["status"] == "failed"
    assert deployment["deploy_target"] == "cloudflare"


def test_every_attempt_reaches_a_terminal_state(orchestrator, adapter, supabase, seed_template, seed_project):
    template = seed_template(SITE_FILES)
    project_id = seed_project(template.id)

    orchestrator.trigger_deploy(project_id, "user-1")
    adapter.error = RuntimeError("connection reset")
    with pytest.raises(RuntimeError):
        orchestrator.trigger_deploy(project_id, "user-1")

    deployments = DeploymentService(supabase).list_deployments_by_project(project_id)
    assert [d.status for d in deployments] == [DeploymentStatus.FAILED, DeploymentStatus.SUCCESS]
    assert int(deployments[0].version[1:]) > int(deployments[1].version[1:])


def test_terminal_deployments_reject_transitions(orchestrator, supabase, seed_template, seed_project):
    template = seed_template(SITE_FILES)
    project_id = seed_project(template.id)
    deployment = orchestrator.trigger_deploy(project_id, "user-1")
    service = DeploymentService(supabase)

    with pytest.raises(TransitionNotAllowed, match="from 'success' to 'failed'"):
        service.transition(deployment.id, DeploymentStatus.FAILED)
    with pytest.raises(TransitionNotAllowed):
        service.transition(deployment.id, DeploymentStatus.BUILDING)

    assert service.get_deployment_by_id(deployment.id).status == DeploymentStatus.SUCCESS


def test_transition_is_conditional_on_current_status(supabase, seed_project):
    service = DeploymentService(supabase)
    deployment = service.create_deployment(seed_project("tpl"), DeployTarget.NETLIFY, "user-1")
    service.transition(deployment.id, DeploymentStatus.BUILDING)

    # Another writer finishes the deployment between our read and our write
    real_get = service.get_deployment_by_id
    calls = {"n": 0}

    def stale_read(deployment_id):
        calls["n"] += 1
        current = real_get(deployment_id)
        if calls["n"] == 1:
            supabase.table("deployments").update({"status": "success"}).eq("id", deployment_id).execute()
        return current

    service.get_deployment_by_id = stale_read
    with pytest.raises(TransitionNotAllowed):
        service.transition(deployment.id, DeploymentStatus.FAILED)

    assert real_get(deployment.id).status == DeploymentStatus.SUCCESS


def test_version_labels_strictly_increase():
    labels = [next_version_label() for _ in range(50)]

    numbers = [int(label[1:]) for label in labels]
    assert all(label.startswith("v") for label in labels)
    assert numbers == sorted(set(numbers))


@pytest.mark.parametrize("current, target", [
    (DeploymentStatus.PENDING, DeploymentStatus.BUILDING),
    (DeploymentStatus.BUILDING, DeploymentStatus.SUCCESS),
    (DeploymentStatus.BUILDING, DeploymentStatus.FAILED),
    (DeploymentStatus.PENDING, DeploymentStatus.FAILED),
])
def test_allowed_transitions(current, target):
    check_transition(current, target)


@pytest.mark.parametrize("current, target", [
    (DeploymentStatus.PENDING, DeploymentStatus.SUCCESS),
    (DeploymentStatus.BUILDING, DeploymentStatus.PENDING),
    (DeploymentStatus.SUCCESS, DeploymentStatus.FAILED),
    (DeploymentStatus.FAILED, DeploymentStatus.BUILDING),
])
def test_rejected_transitions(current, target):
    with pytest.raises(TransitionNotAllowed):
        check_transition(current, target)
