"""
Problem Store - Firestore persistence for problem documents.

Owns the "problems" collection. Every mutation is a read-modify-write on
one document with no concurrency control: the last write wins.
"""

from app.config.firebase import get_db
from app.core.errors import NotFoundError
from app.utils.firestore_helpers import where_filter, snapshot_to_dict, DESCENDING
from app.utils.identifiers import generate_problem_id
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

PROBLEMS_COLLECTION = "problems"
MAX_PROBLEM_ID_ATTEMPTS = 5


class ProblemStore:
    """CRUD over the problems collection."""

    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        return self._db if self._db is not None else get_db()

    @property
    def collection(self):
        return self.db.collection(PROBLEMS_COLLECTION)

    def new_problem_id(self) -> str:
        """
        Generate a problem id that no stored problem uses yet.

        Raises:
            RuntimeError: if every attempt collided (practically unreachable).
        """
        for _ in range(MAX_PROBLEM_ID_ATTEMPTS):
            candidate = generate_problem_id()
            if self.get_by_problem_id(candidate) is None:
                return candidate
            logger.warning(f"Problem id collision on {candidate}, regenerating")
        raise RuntimeError("Could not generate a unique problem id")

    def create(self, data: Dict) -> Dict:
        """Persist a new problem document and return it with its id."""
        doc_ref = self.collection.document()
        doc_ref.set(data)
        logger.info(f"Problem saved to Firestore: {doc_ref.id} ({data.get('problem_id')})")
        created = dict(data)
        created["id"] = doc_ref.id
        return created

    def get(self, doc_id: str) -> Optional[Dict]:
        return snapshot_to_dict(self.collection.document(doc_id).get())

    def get_or_raise(self, doc_id: str) -> Dict:
        problem = self.get(doc_id)
        if problem is None:
            raise NotFoundError("Problem not found")
        return problem

    def get_by_problem_id(self, problem_id: str) -> Optional[Dict]:
        query = where_filter(self.collection, "problem_id", "==", problem_id).limit(1)
        for doc in query.stream():
            return snapshot_to_dict(doc)
        return None

    def list_all(self, problem_id: Optional[str] = None) -> List[Dict]:
        """All problems, newest first, optionally narrowed to one problem id."""
        query = self.collection
        if problem_id:
            query = where_filter(query, "problem_id", "==", problem_id)
        query = query.order_by("created_at", direction=DESCENDING)
        return [snapshot_to_dict(doc) for doc in query.stream()]

    def most_recent(self) -> Optional[Dict]:
        query = self.collection.order_by("created_at", direction=DESCENDING).limit(1)
        for doc in query.stream():
            return snapshot_to_dict(doc)
        return None

    def update(self, doc_id: str, fields: Dict) -> Dict:
        """
        Apply a partial update and return the full document.

        Raises:
            NotFoundError: if the document does not exist (e.g. deleted meanwhile).
        """
        doc_ref = self.collection.document(doc_id)
        if not doc_ref.get().exists:
            raise NotFoundError("Problem not found")
        doc_ref.update(fields)
        return self.get_or_raise(doc_id)

    def append(self, doc_id: str, field: str, entry: Dict) -> Dict:
        """Append one entry to a list field (comments, solutions)."""
        problem = self.get_or_raise(doc_id)
        items = list(problem.get(field) or [])
        items.append(entry)
        return self.update(doc_id, {field: items})

    def delete(self, doc_id: str) -> bool:
        doc_ref = self.collection.document(doc_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        logger.info(f"Problem deleted: {doc_id}")
        return True

    def delete_by_problem_ids(self, problem_ids: List[str]) -> int:
        """Delete every document whose problem_id is in the list. Returns the count."""
        deleted = 0
        # Firestore caps "in" filters at 30 values
        for start in range(0, len(problem_ids), 30):
            chunk = problem_ids[start:start + 30]
            for doc in where_filter(self.collection, "problem_id", "in", chunk).stream():
                doc.reference.delete()
                deleted += 1
        logger.info(f"Deleted {deleted} problem(s) by problem id")
        return deleted

    def is_empty(self) -> bool:
        return not any(True for _ in self.collection.limit(1).stream())


# Global store instance (singleton pattern)
_problem_store: Optional[ProblemStore] = None


def get_problem_store() -> ProblemStore:
    """Get or create the ProblemStore singleton."""
    global _problem_store
    if _problem_store is None:
        _problem_store = ProblemStore()
    return _problem_store
