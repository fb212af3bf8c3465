"""
Pytest Configuration and Fixtures

MongoDB is replaced by mongomock and uploads go to pytest's tmp_path.
"""

import os
import tempfile

# Keep test log files out of the working tree; must run before settings load
os.environ.setdefault("LOGS_PATH", os.path.join(tempfile.gettempdir(), "visaflow-test-logs"))

import mongomock
import pytest
from fastapi.testclient import TestClient

from visaflow.config.workflow_template import DEFAULT_VISA_TEMPLATE
from visaflow.domain.models import ArtifactRequirement, StepTemplate, WorkflowTemplate
from visaflow.engine.audit_writer import AuditWriter
from visaflow.engine.engine import WorkflowEngine
from visaflow.repositories.audit_repo import AuditRepository
from visaflow.repositories.mongo_client import MongoConnection
from visaflow.repositories.workflow_repo import WorkflowRepository
from visaflow.services.artifact_storage import ArtifactStorage


@pytest.fixture
def mongo_connection():
    """Open connection backed by an in-memory mongomock client."""
    connection = MongoConnection(
        "mongodb://localhost:27017",
        "visaflow_test",
        client=mongomock.MongoClient()
    )
    connection.open()
    connection.create_indexes()
    yield connection
    connection.close()


@pytest.fixture
def visa_template() -> WorkflowTemplate:
    """The six-step visa checklist (step 1 needs exactly two artifacts)."""
    return DEFAULT_VISA_TEMPLATE


@pytest.fixture
def short_template() -> WorkflowTemplate:
    """Two ungated steps followed by a gated one."""
    return WorkflowTemplate(
        name="Short",
        steps=[
            StepTemplate(title="Intake"),
            StepTemplate(title="Review"),
            StepTemplate(title="Evidence", requirement=ArtifactRequirement.at_least(2)),
        ],
    )


@pytest.fixture
def workflow_repo(mongo_connection) -> WorkflowRepository:
    return WorkflowRepository(mongo_connection)


@pytest.fixture
def audit_repo(mongo_connection) -> AuditRepository:
    return AuditRepository(mongo_connection)


@pytest.fixture
def make_engine(mongo_connection, visa_template):
    """Build engines that share the same database but not repository objects."""
    def _make(template: WorkflowTemplate = None, conflict_retries: int = 3, workflow_repo=None):
        return WorkflowEngine(
            workflow_repo=workflow_repo or WorkflowRepository(mongo_connection),
            audit_writer=AuditWriter(AuditRepository(mongo_connection)),
            template=template or visa_template,
            conflict_retries=conflict_retries
        )
    return _make


@pytest.fixture
def engine(make_engine, workflow_repo) -> WorkflowEngine:
    return make_engine(workflow_repo=workflow_repo)


@pytest.fixture
def uploads_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def artifact_storage(uploads_dir) -> ArtifactStorage:
    return ArtifactStorage(
        base_path=str(uploads_dir),
        max_bytes=1024,
        allowed_mime_types=["application/pdf", "image/*"]
    )


@pytest.fixture
def client(mongo_connection, artifact_storage, visa_template):
    """API client wired to the mongomock connection."""
    from visaflow.main import create_app

    app = create_app(
        connection=mongo_connection,
        artifact_storage=artifact_storage,
        workflow_template=visa_template
    )
    with TestClient(app) as test_client:
        yield test_client
