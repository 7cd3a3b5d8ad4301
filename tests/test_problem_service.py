import time
from datetime import datetime, timezone

import pytest

from app.core.errors import AuthorizationError, NotFoundError, ValidationError
from app.core.settings import settings
from app.services.ai_enrichment import EnrichmentClient
from app.services.ai_enrichment.registry import QUICK_ANALYSIS_FALLBACK
from app.services.problem_service import ProblemService
from app.services.problem_store import ProblemStore
from app.services.sms_service import SMSService
from app.services.user_service import UserService
from app.utils.identifiers import PROBLEM_ID_PATTERN


class Scheduler:
    """Collects scheduled jobs so tests decide when background work runs."""

    def __init__(self):
        self.jobs = []

    def __call__(self, fn, *args, **kwargs):
        self.jobs.append((fn, args, kwargs))

    def run_all(self):
        jobs, self.jobs = self.jobs, []
        for fn, args, kwargs in jobs:
            fn(*args, **kwargs)


@pytest.fixture
def scheduler():
    return Scheduler()


@pytest.fixture
def users(mock_db):
    return UserService(mock_db)


@pytest.fixture
def owner(users):
    return users.register("asha", "asha@example.com", "secret123")


@pytest.fixture
def stranger(users):
    return users.register("ravi", "ravi@example.com", "secret123")


@pytest.fixture
def make_service(mock_db, users, scheduler, make_provider):
    def _make(provider=None, timeout_seconds=2.0):
        return ProblemService(
            store=ProblemStore(mock_db),
            users=users,
            enrichment=EnrichmentClient(provider or make_provider(), timeout_seconds=timeout_seconds),
            sms=SMSService(account_sid="", auth_token=""),
            schedule=scheduler,
        )
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


FIELDS = {
    "title": "Water Pipeline Leakage",
    "description": "Pipe burst near the park gate.",
    "category": "UTILITIES",
}


def test_submit_stores_pending_problem_and_schedules_work(service, owner, scheduler):
    problem = service.submit(FIELDS, owner["id"])

    assert PROBLEM_ID_PATTERN.match(problem["problem_id"])
    stored = service.get_problem(problem["id"])
    assert stored["status"] == "Pending"
    assert stored["votes"] == 0
    assert stored["ai_suggestions"] is None
    assert stored["user_id"] == owner["id"]
    assert stored["comments"] == [] and stored["solutions"] == []

    scheduled = [fn.__name__ for fn, _, _ in scheduler.jobs]
    assert scheduled == ["enrich_and_attach", "notify_new_problem"]


def test_submit_requires_title_and_description(service, owner):
    with pytest.raises(ValidationError, match="Title and description are required"):
        service.submit({"title": "  ", "description": "x"}, owner["id"])


def test_submit_rejects_bad_coordinates(service, owner):
    with pytest.raises(ValidationError):
        service.submit({**FIELDS, "latitude": "north"}, owner["id"])


def test_submit_uses_valid_severity_hint(service, owner):
    problem = service.submit({**FIELDS, "severity": "high"}, owner["id"])
    assert service.get_problem(problem["id"])["severity"] == "HIGH"

    problem = service.submit({**FIELDS, "severity": "catastrophic"}, owner["id"])
    assert service.get_problem(problem["id"])["severity"] == "MEDIUM"


def test_enrichment_result_written_back(make_service, make_provider, owner, scheduler):
    service = make_service(make_provider(text="Urgent: water main failure"))
    problem = service.submit(FIELDS, owner["id"])

    scheduler.run_all()

    stored = service.get_problem(problem["id"])
    assert stored["ai_suggestions"] == "Urgent: water main failure"
    assert stored["severity"] == "HIGH"


def test_failed_enrichment_writes_fallback(make_service, make_provider, owner, scheduler):
    service = make_service(make_provider(error=RuntimeError("model offline")))
    problem = service.submit({**FIELDS, "severity": "LOW"}, owner["id"])

    scheduler.run_all()

    stored = service.get_problem(problem["id"])
    assert stored["ai_suggestions"] == QUICK_ANALYSIS_FALLBACK
    assert stored["severity"] == "MEDIUM"


def test_timed_out_enrichment_writes_fallback(make_service, make_provider, owner, scheduler):
    service = make_service(make_provider(hang=True), timeout_seconds=0.2)
    problem = service.submit(FIELDS, owner["id"])

    scheduler.run_all()

    stored = service.get_problem(problem["id"])
    assert stored["ai_suggestions"] == QUICK_ANALYSIS_FALLBACK
    assert stored["severity"] == "MEDIUM"


def test_late_ai_answer_after_timeout_is_discarded(make_service, make_provider, owner, scheduler):
    provider = make_provider(hang=True)
    service = make_service(provider, timeout_seconds=0.2)
    problem = service.submit(FIELDS, owner["id"])

    scheduler.run_all()
    assert service.get_problem(problem["id"])["ai_suggestions"] == QUICK_ANALYSIS_FALLBACK

    provider.text = "Urgent: main burst, road flooding"
    provider.gate.set()
    assert provider.finished.wait(timeout=5)
    time.sleep(0.2)

    stored = service.get_problem(problem["id"])
    assert stored["ai_suggestions"] == QUICK_ANALYSIS_FALLBACK
    assert stored["severity"] == "MEDIUM"


def test_enrichment_for_deleted_problem_is_dropped(service, owner, scheduler, mock_db):
    problem = service.submit(FIELDS, owner["id"])
    service.delete_problem(problem["id"])

    scheduler.run_all()

    assert not mock_db.collection("problems").document(problem["id"]).get().exists


def test_vote_up_then_down_restores_count(service, owner):
    problem = service.submit(FIELDS, owner["id"])

    assert service.vote(problem["id"], 1)["votes"] == 1
    assert service.vote(problem["id"], -1)["votes"] == 0
    assert service.vote(problem["id"], -1)["votes"] == -1


def test_vote_unknown_problem(service):
    with pytest.raises(NotFoundError):
        service.vote("missing", 1)


def test_edit_by_non_owner_leaves_record_unchanged(service, owner, stranger):
    problem = service.submit(FIELDS, owner["id"])
    before = service.get_problem(problem["id"])

    with pytest.raises(AuthorizationError, match="Only the problem owner can update the details"):
        service.edit_details(problem["id"], {"title": "Hijacked"}, stranger["id"])

    assert service.get_problem(problem["id"]) == before


def test_edit_by_owner_reenriches_before_returning(make_service, make_provider, owner, scheduler):
    service = make_service(make_provider(text="Critical structural damage"))
    problem = service.submit(FIELDS, owner["id"])

    updated = service.edit_details(
        problem["id"], {"title": "Collapsed Pipeline", "status": "Solved"}, owner["id"]
    )

    assert updated["title"] == "Collapsed Pipeline"
    assert updated["description"] == FIELDS["description"]
    assert updated["status"] == "Pending"
    assert updated["ai_suggestions"] == "Critical structural damage"
    assert updated["severity"] == "HIGH"


def test_edit_can_defer_enrichment(service, owner, scheduler, monkeypatch):
    monkeypatch.setattr(settings, "ENRICH_EDITS_IN_BACKGROUND", True)
    problem = service.submit(FIELDS, owner["id"])
    scheduler.jobs.clear()

    updated = service.edit_details(problem["id"], {"category": "WATER"}, owner["id"])

    assert updated["category"] == "WATER"
    assert updated["ai_suggestions"] is None
    assert [fn.__name__ for fn, _, _ in scheduler.jobs] == ["enrich_and_attach"]


def test_update_status_validates_value(service, owner):
    problem = service.submit(FIELDS, owner["id"])

    with pytest.raises(ValidationError, match="Must be one of: Pending, In Progress, Solved"):
        service.update_status(problem["id"], "Archived", owner["id"])

    assert service.update_status(problem["id"], "In Progress", owner["id"])["status"] == "In Progress"
    assert service.get_problem(problem["id"])["status"] == "In Progress"


def test_update_status_checks_owner_before_value(service, owner, stranger):
    problem = service.submit(FIELDS, owner["id"])

    with pytest.raises(AuthorizationError):
        service.update_status(problem["id"], "Archived", stranger["id"])


def test_update_status_unknown_problem(service, owner):
    with pytest.raises(NotFoundError):
        service.update_status("missing", "Solved", owner["id"])


def test_comment_snapshots_username(service, owner, stranger):
    problem = service.submit(FIELDS, owner["id"])

    comment = service.add_comment(problem["id"], "  Same on my street  ", stranger["id"])

    assert comment["text"] == "Same on my street"
    assert comment["username"] == "ravi"
    comments = service.list_comments(problem["id"])
    assert [c["text"] for c in comments] == ["Same on my street"]


def test_comment_requires_text(service, owner):
    problem = service.submit(FIELDS, owner["id"])
    with pytest.raises(ValidationError, match="Comment text is required"):
        service.add_comment(problem["id"], "", owner["id"])


def test_add_solution(service, owner, stranger):
    problem = service.submit(FIELDS, owner["id"])

    updated = service.add_solution(problem["id"], "Replace the valve", stranger["id"])

    assert updated["solutions"][0]["description"] == "Replace the valve"
    assert updated["solutions"][0]["votes"] == 0
    with pytest.raises(ValidationError):
        service.add_solution(problem["id"], None, stranger["id"])


def test_delete_by_problem_id_then_lookup_404(service, owner):
    problem = service.submit(FIELDS, owner["id"])

    service.delete_by_problem_id(problem["problem_id"])

    with pytest.raises(NotFoundError):
        service.get_problem(problem["id"])
    with pytest.raises(NotFoundError, match=problem["problem_id"]):
        service.delete_by_problem_id(problem["problem_id"])


def test_delete_many(service, owner):
    first = service.submit(FIELDS, owner["id"])
    second = service.submit(FIELDS, owner["id"])
    service.submit(FIELDS, owner["id"])

    deleted = service.delete_many([first["problem_id"], second["problem_id"], "PROB-NOPE00000"])

    assert deleted == 2
    assert len(service.list_problems()) == 1


def test_delete_many_rejects_bad_input(service):
    with pytest.raises(ValidationError, match="Please provide an array of problem IDs"):
        service.delete_many("PROB-AAAAAAAAA")
    with pytest.raises(ValidationError):
        service.delete_many([])
    with pytest.raises(NotFoundError, match="No problems found with the provided IDs"):
        service.delete_many(["PROB-AAAAAAAAA"])


def test_delete_most_recent(service, owner):
    older = service.submit(FIELDS, owner["id"])
    newer = service.submit(FIELDS, owner["id"])

    deleted = service.delete_most_recent()

    assert deleted["id"] == newer["id"]
    assert [p["id"] for p in service.list_problems()] == [older["id"]]


def test_list_filters_and_order(service, owner):
    first = service.submit({**FIELDS, "category": "Roads"}, owner["id"])
    second = service.submit(FIELDS, owner["id"])

    assert [p["id"] for p in service.list_problems()] == [second["id"], first["id"]]
    assert [p["id"] for p in service.list_problems(category="roads")] == [first["id"]]
    assert [p["id"] for p in service.list_problems(problem_id=second["problem_id"])] == [second["id"]]

    with pytest.raises(NotFoundError, match="No problems found"):
        service.list_problems(category="Noise")


def test_to_response_fills_defaults(service, mock_db):
    mock_db.collection("problems").document("legacyDoc123456").set({
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "user_id": "deleted-user",
    })
    raw = service.get_problem("legacyDoc123456")

    response = service.to_response(raw)

    assert response["problem_id"] == "PROB-123456"
    assert response["title"] == "Untitled Problem"
    assert response["description"] == "No description provided"
    assert response["category"] == "Uncategorized"
    assert response["status"] == "Pending"
    assert response["severity"] == "MEDIUM"
    assert response["votes"] == 0
    assert response["owner"] == {"id": None, "username": "Anonymous"}


def test_to_response_resolves_owner(service, owner):
    problem = service.submit(FIELDS, owner["id"])

    response = service.to_response(service.get_problem(problem["id"]))

    assert response["owner"] == {"id": owner["id"], "username": "asha"}


def test_submit_survives_stopped_background_pool(mock_db, users, owner, make_provider):
    def stopped_pool(fn, *args, **kwargs):
        raise RuntimeError("cannot schedule new futures after shutdown")

    service = ProblemService(
        store=ProblemStore(mock_db),
        users=users,
        enrichment=EnrichmentClient(make_provider()),
        sms=SMSService(account_sid="", auth_token=""),
        schedule=stopped_pool,
    )

    problem = service.submit(FIELDS, owner["id"])

    stored = service.get_problem(problem["id"])
    assert stored["status"] == "Pending"
    assert stored["ai_suggestions"] is None
