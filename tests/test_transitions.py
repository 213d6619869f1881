"""
Status transition table tests.
"""

import pytest

from app.core import transitions
from app.core.errors import InvalidTransition
from app.core.transitions import EntityKind
from app.models.application import ApplicationStatus
from app.models.job import JobStatus

APPLICATION_EDGES = {
    "new": {"screening", "interview", "rejected"},
    "screening": {"interview", "offer", "rejected"},
    "interview": {"offer", "rejected"},
    "offer": {"hired", "rejected"},
    "hired": set(),
    "rejected": {"new"},
}

JOB_EDGES = {
    "draft": {"open", "archived"},
    "open": {"closed", "archived"},
    "closed": {"open", "archived"},
    "archived": {"draft", "open"},
}


class TestIsAllowed:
    @pytest.mark.parametrize(
        "kind,edges,states",
        [
            (EntityKind.application, APPLICATION_EDGES, list(ApplicationStatus)),
            (EntityKind.job, JOB_EDGES, list(JobStatus)),
        ],
    )
    def test_matches_table_exactly(self, kind, edges, states):
        for current in states:
            for requested in states:
                expected = current == requested or requested.value in edges[current.value]
                assert transitions.is_allowed(kind, current, requested) is expected, (
                    current, requested,
                )

    def test_same_state_is_a_no_op(self):
        assert transitions.is_allowed("application", "hired", "hired")
        assert transitions.is_allowed("job", "archived", "archived")

    def test_hired_is_terminal(self):
        assert transitions.allowed_targets(EntityKind.application, "hired") == ()

    def test_unknown_state_reaches_nothing(self):
        assert not transitions.is_allowed("job", "deleted", "open")


class TestValidate:
    def test_hired_to_offer_lists_none(self):
        with pytest.raises(InvalidTransition) as exc_info:
            transitions.validate(EntityKind.application, "hired", "offer")
        exc = exc_info.value
        assert exc.status_code == 422
        assert exc.detail["code"] == "INVALID_TRANSITION"
        assert exc.detail["message"] == 'Cannot transition from "hired" to "offer". Allowed: none'
        assert exc.detail["allowed"] == []

    def test_archived_job_can_return_to_draft(self):
        transitions.validate(EntityKind.job, JobStatus.archived, JobStatus.draft)

    def test_archived_job_cannot_close(self):
        with pytest.raises(InvalidTransition) as exc_info:
            transitions.validate(EntityKind.job, JobStatus.archived, JobStatus.closed)
        assert exc_info.value.detail["allowed"] == ["draft", "open"]
        assert "Allowed: draft, open" in exc_info.value.detail["message"]


def test_transition_table_is_serializable_copy():
    table = transitions.transition_table()
    assert set(table) == {"job", "application"}
    assert table["application"]["hired"] == []
    table["job"]["draft"].append("closed")
    assert "closed" not in transitions.allowed_targets("job", "draft")
