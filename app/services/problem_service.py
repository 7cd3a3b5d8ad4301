"""
Problem Lifecycle Service - submission, enrichment write-back and mutations.

DESIGN NOTE:
- Submission stores the problem and returns before AI enrichment or the SMS
  notification run; both are scheduled on the background pool
- Enrichment failures are replaced by a fallback, SMS failures are dropped;
  neither can fail the request that created the problem
- Edits re-run enrichment before returning (unless ENRICH_EDITS_IN_BACKGROUND)
- No concurrency control: edit, vote and enrichment write-back are
  independent read-modify-writes and the last one wins
- Each delete path is its own method because each has its own (weak)
  authorization at the route level
"""

from app.core.errors import AuthorizationError, NotFoundError, ValidationError
from app.core.settings import settings
from app.models.problem import ProblemStatus, Severity
from app.services.ai_enrichment import EnrichmentClient, ImageInput, get_enrichment_client
from app.services.background import run_in_background
from app.services.problem_store import ProblemStore, get_problem_store
from app.services.sms_service import SMSService, get_sms_service
from app.services.user_service import UserService, get_user_service
from app.utils.firestore_helpers import to_datetime
from app.utils.identifiers import legacy_problem_id
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "category")
VALID_STATUSES = [status.value for status in ProblemStatus]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid coordinate: {value}")


def require_title_and_description(fields: Dict):
    """
    Return the stripped (title, description).

    Raises:
        ValidationError: either one is missing or blank.
    """
    title = (fields.get("title") or "").strip()
    description = (fields.get("description") or "").strip()
    if not title or not description:
        raise ValidationError("Title and description are required")
    return title, description


class ProblemService:
    """
    Orchestrates the problem lifecycle on top of the store, the enrichment
    client and the SMS client. Collaborators default to the app singletons.
    """

    def __init__(
        self,
        store: Optional[ProblemStore] = None,
        users: Optional[UserService] = None,
        enrichment: Optional[EnrichmentClient] = None,
        sms: Optional[SMSService] = None,
        schedule: Optional[Callable] = None
    ):
        self._store = store
        self._users = users
        self._enrichment = enrichment
        self._sms = sms
        self._schedule = schedule or run_in_background

    @property
    def store(self) -> ProblemStore:
        return self._store or get_problem_store()

    @property
    def users(self) -> UserService:
        return self._users or get_user_service()

    @property
    def enrichment(self) -> EnrichmentClient:
        return self._enrichment or get_enrichment_client()

    @property
    def sms(self) -> SMSService:
        return self._sms or get_sms_service()

    def _schedule_after_response(self, fn, *args) -> None:
        """
        Hand work to the background pool. A pool that no longer accepts work
        (after shutdown) loses the job; the stored problem stays as is.
        """
        try:
            self._schedule(fn, *args)
        except RuntimeError as e:
            logger.warning(f"⚠️ Could not schedule {getattr(fn, '__name__', fn)}: {e}")

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(
        self,
        fields: Dict,
        owner_id: str,
        image_path: Optional[str] = None,
        image: Optional[ImageInput] = None
    ) -> Dict:
        """
        Store a new problem and schedule enrichment + notification.

        Flow:
        1. Validate fields and assign a fresh problem id
        2. Persist (status Pending, votes 0, ai_suggestions None)
        3. Schedule AI enrichment write-back (background)
        4. Schedule SMS to the authority (background)
        5. Return the stored problem without waiting for 3 or 4

        Raises:
            ValidationError: missing title/description or bad coordinates.
        """
        title, description = require_title_and_description(fields)

        severity_hint = (fields.get("severity") or "").strip().upper()
        severity = severity_hint if severity_hint in Severity.__members__ else Severity.MEDIUM.value

        problem_data = {
            "problem_id": self.store.new_problem_id(),
            "title": title,
            "description": description,
            "category": (fields.get("category") or "").strip(),
            "status": ProblemStatus.PENDING.value,
            "severity": severity,
            "votes": 0,
            "location": {
                "latitude": _optional_float(fields.get("latitude")),
                "longitude": _optional_float(fields.get("longitude")),
                "address": fields.get("address") or None,
            },
            "image": image_path,
            "ai_suggestions": None,
            "user_id": owner_id,
            "comments": [],
            "solutions": [],
            "created_at": _now(),
        }

        problem = self.store.create(problem_data)

        enrichment_fields = {k: problem[k] for k in EDITABLE_FIELDS}
        self._schedule_after_response(self.enrich_and_attach, problem["id"], enrichment_fields, image)
        self._schedule_after_response(self.sms.notify_new_problem, dict(problem))

        return problem

    def enrich_and_attach(self, doc_id: str, fields: Dict, image: Optional[ImageInput] = None) -> Optional[Dict]:
        """
        Run enrichment and write the result onto the stored problem.

        The write-back is skipped (logged) when the problem no longer exists
        or the store write fails. Never raises.
        """
        result = self.enrichment.suggest(fields, image)
        try:
            updated = self.store.update(doc_id, {
                "ai_suggestions": result.text,
                "severity": result.severity,
            })
            logger.info(
                f"AI suggestions attached to problem {doc_id} "
                f"(severity={result.severity}, fallback={result.fallback})"
            )
            return updated
        except NotFoundError:
            logger.warning(f"Problem {doc_id} no longer exists, dropping AI suggestions")
        except Exception as e:
            logger.error(f"Failed to attach AI suggestions to problem {doc_id}: {e}", exc_info=True)
        return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_problem(self, doc_id: str) -> Dict:
        return self.store.get_or_raise(doc_id)

    def list_problems(self, problem_id: Optional[str] = None, category: Optional[str] = None) -> List[Dict]:
        """
        Problems newest first, optionally filtered by problem id and
        (case-insensitively) by category.

        Raises:
            NotFoundError: when nothing matches.
        """
        problems = self.store.list_all(problem_id=problem_id)
        if category:
            wanted = category.strip().lower()
            problems = [p for p in problems if (p.get("category") or "").lower() == wanted]
        if not problems:
            raise NotFoundError("No problems found")
        return problems

    def list_comments(self, doc_id: str) -> List[Dict]:
        return list(self.store.get_or_raise(doc_id).get("comments") or [])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def vote(self, doc_id: str, delta: int) -> Dict:
        """
        Add `delta` to the vote counter.

        Any integer is accepted and there is no floor. Callers are not
        authenticated and may vote repeatedly.
        """
        problem = self.store.get_or_raise(doc_id)
        votes = int(problem.get("votes") or 0) + int(delta)
        return self.store.update(doc_id, {"votes": votes})

    def add_comment(self, doc_id: str, text: Optional[str], author_id: str) -> Dict:
        """
        Append a comment with a snapshot of the author's username.

        Raises:
            ValidationError: empty text.
            NotFoundError: unknown problem or author.
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text is required")

        self.store.get_or_raise(doc_id)
        author = self.users.get_user(author_id)
        if not author:
            raise NotFoundError("User not found")

        comment = {
            "text": text,
            "user_id": author["id"],
            "username": author.get("username"),
            "created_at": _now(),
        }
        self.store.append(doc_id, "comments", comment)
        return comment

    def add_solution(self, doc_id: str, description: Optional[str], author_id: str) -> Dict:
        description = (description or "").strip()
        if not description:
            raise ValidationError("Solution description is required")

        solution = {
            "description": description,
            "user_id": author_id,
            "votes": 0,
            "created_at": _now(),
        }
        return self.store.append(doc_id, "solutions", solution)

    def _require_owner(self, problem: Dict, caller_id: str, action: str) -> None:
        if not caller_id or problem.get("user_id") != caller_id:
            raise AuthorizationError(f"Only the problem owner can update the {action}")

    def update_status(self, doc_id: str, new_status: Optional[str], caller_id: str) -> Dict:
        """
        Owner-only status change.

        Raises:
            NotFoundError, AuthorizationError, ValidationError (checked in that order).
        """
        problem = self.store.get_or_raise(doc_id)
        self._require_owner(problem, caller_id, "status")

        if new_status not in VALID_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")

        return self.store.update(doc_id, {"status": new_status})

    def edit_details(self, doc_id: str, patch: Dict, caller_id: str) -> Dict:
        """
        Owner-only edit of title/description/category, then re-enrichment.

        Unlike submission, enrichment runs before this returns and its result is
        part of the returned problem. Set ENRICH_EDITS_IN_BACKGROUND to use the
        submission path instead.
        """
        problem = self.store.get_or_raise(doc_id)
        self._require_owner(problem, caller_id, "details")

        updates = {
            field: patch[field]
            for field in EDITABLE_FIELDS
            if patch.get(field) is not None
        }
        if updates:
            problem = self.store.update(doc_id, updates)

        enrichment_fields = {field: problem.get(field, "") for field in EDITABLE_FIELDS}

        if settings.ENRICH_EDITS_IN_BACKGROUND:
            self._schedule_after_response(self.enrich_and_attach, doc_id, enrichment_fields)
            return problem

        result = self.enrichment.suggest(enrichment_fields)
        return self.store.update(doc_id, {
            "ai_suggestions": result.text,
            "severity": result.severity,
        })

    # ------------------------------------------------------------------
    # Deletes
    # ------------------------------------------------------------------

    def delete_problem(self, doc_id: str) -> None:
        """Delete by internal id. The route only requires a session, not ownership."""
        if not self.store.delete(doc_id):
            raise NotFoundError("Problem not found")

    def delete_by_problem_id(self, problem_id: str) -> None:
        """Delete by human-facing id. The route is open to anonymous callers."""
        problem = self.store.get_by_problem_id(problem_id)
        if problem is None:
            raise NotFoundError(f"Problem with ID {problem_id} not found")
        self.store.delete(problem["id"])

    def delete_most_recent(self) -> Dict:
        problem = self.store.most_recent()
        if problem is None:
            raise NotFoundError("No problems found")
        self.store.delete(problem["id"])
        return problem

    def delete_many(self, problem_ids) -> int:
        """
        Delete every problem whose problem id is listed.

        Raises:
            ValidationError: not a non-empty list.
            NotFoundError: nothing matched.
        """
        if not isinstance(problem_ids, list) or not problem_ids:
            raise ValidationError("Please provide an array of problem IDs")

        deleted = self.store.delete_by_problem_ids([str(pid) for pid in problem_ids])
        if deleted == 0:
            raise NotFoundError("No problems found with the provided IDs")
        return deleted

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def to_response(self, problem: Dict, owners: Optional[Dict[str, Dict]] = None) -> Dict:
        """
        Fill read-side defaults and resolve the owner's username.

        `owners` caches user lookups across a list response.
        """
        owners = owners if owners is not None else {}
        user_id = problem.get("user_id")
        owner = {"id": None, "username": "Anonymous"}
        if user_id:
            if user_id not in owners:
                owners[user_id] = self.users.get_user(user_id)
            user = owners[user_id]
            if user:
                owner = {"id": user_id, "username": user.get("username") or "Anonymous"}

        comments = [
            {**comment, "created_at": to_datetime(comment.get("created_at"))}
            for comment in problem.get("comments") or []
        ]
        solutions = [
            {**solution, "created_at": to_datetime(solution.get("created_at"))}
            for solution in problem.get("solutions") or []
        ]

        return {
            "id": problem["id"],
            "problem_id": problem.get("problem_id") or legacy_problem_id(problem["id"]),
            "title": problem.get("title") or "Untitled Problem",
            "description": problem.get("description") or "No description provided",
            "category": problem.get("category") or "Uncategorized",
            "status": problem.get("status") or ProblemStatus.PENDING.value,
            "severity": problem.get("severity") or Severity.MEDIUM.value,
            "votes": problem.get("votes") or 0,
            "location": problem.get("location") or {},
            "image": problem.get("image") or None,
            "ai_suggestions": problem.get("ai_suggestions") or None,
            "user_id": user_id,
            "owner": owner,
            "created_at": to_datetime(problem.get("created_at")),
            "comments": comments,
            "solutions": solutions,
        }


# Global service instance
_problem_service: Optional[ProblemService] = None


def get_problem_service() -> ProblemService:
    """Get or create ProblemService singleton."""
    global _problem_service
    if _problem_service is None:
        _problem_service = ProblemService()
    return _problem_service
