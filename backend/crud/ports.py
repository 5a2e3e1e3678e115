"""
Ports for CRUD adapters: the protocol every backend implements plus the
shared job filter.

Records are plain dicts in the collaborator's camelCase JSON shape
(`firstName`, `company.name`, ...). Adapters raise
`identity_access.errors.CollaboratorError` (or `CollaboratorTimeout`) when the
backing store cannot answer.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Protocol


class CrudBackend(Protocol):
    def list_users(self) -> List[dict]:
        ...

    def create_user(self, record: dict) -> dict:
        ...

    def list_jobs(self, *, query: Optional[str] = None, featured: bool = False) -> List[dict]:
        ...

    def get_job(self, job_id: str) -> Optional[dict]:
        ...

    def list_applications(self) -> List[dict]:
        ...

    def create_application(self, *, job_id: str, user_id: str) -> dict:
        ...


def filter_jobs(jobs: Iterable[dict], *, query: Optional[str] = None, featured: bool = False) -> List[dict]:
    """Case-insensitive match on title, company name and description."""
    result = list(jobs)
    needle = (query or "").strip().lower()
    if needle:
        def _matches(job: dict) -> bool:
            company = job.get("company") or {}
            company_name = company.get("name") if isinstance(company, dict) else company
            haystack = (job.get("title"), company_name, job.get("description"))
            return any(needle in str(v).lower() for v in haystack if v)

        result = [j for j in result if _matches(j)]
    if featured:
        result = [j for j in result if j.get("featured")]
    return result
