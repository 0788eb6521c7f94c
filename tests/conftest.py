"""Shared fixtures: an in-memory entity repository seeded with one portfolio."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from factories import (
    MILESTONE_DUE,
    issues_around,
    make_cluster,
    make_initiative,
    make_milestone,
)


@pytest.fixture(autouse=True)
def reset_logging():
    """CLI runs reconfigure structlog onto streams that close after the run."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def initiative():
    """Active initiative at 50% progress with one milestone inside the range."""
    return make_initiative(milestones=[make_milestone()])


@pytest.fixture
def competing_initiative():
    return make_initiative("init-2", title="Billing revamp")


@pytest.fixture
def cluster(initiative):
    return make_cluster(initiatives=[initiative])


@pytest.fixture
def repository(initiative, competing_initiative, cluster):
    """Mock repository answering every analyzer query for `initiative`."""
    repo = MagicMock()
    repo.get_initiative = AsyncMock(
        side_effect=lambda initiative_id: initiative if initiative_id == initiative.id else None
    )
    repo.get_cluster = AsyncMock(
        side_effect=lambda cluster_id: cluster if cluster_id == cluster.id else None
    )
    repo.get_milestone = AsyncMock(return_value=initiative.milestones[0])
    repo.find_issues_created_between = AsyncMock(
        return_value=issues_around(MILESTONE_DUE, 6)
    )
    repo.find_initiatives_by_owner = AsyncMock(return_value=[competing_initiative])
    return repo
