"""
Repology catalog client.

One GET per query against the project endpoint of the Repology API. The
response keeps the service's ordering; selection happens later in
core.version. Every failure is raised as CatalogUnreachableError, never
treated as "no update available".
"""

import logging
from urllib.parse import quote

import httpx

from pacscript_updater.core.config import UpdaterConfig
from pacscript_updater.core.exceptions import CatalogUnreachableError
from pacscript_updater.core.resilience import CircuitBreaker, RequestThrottle
from pacscript_updater.models.catalog import CatalogRecord, FilterSet

logger = logging.getLogger(__name__)


class RepologyClient:
    """Queries `/api/v1/project/<project>` and normalizes the records."""

    PROJECT_ENDPOINT = "/api/v1/project/{project}"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: UpdaterConfig,
        throttle: RequestThrottle | None = None,
        breaker: CircuitBreaker | None = None,
    ):
        self.client = client
        self.config = config
        self.throttle = throttle or RequestThrottle(config.request_interval)
        self.breaker = breaker or CircuitBreaker(failure_threshold=config.failure_threshold)

    def project_url(self, project: str) -> str:
        base = self.config.repology_url.rstrip("/")
        return base + self.PROJECT_ENDPOINT.format(project=quote(project, safe=""))

    async def query(self, filters: FilterSet) -> list[CatalogRecord]:
        project = filters.project
        self.breaker.guard(project)
        await self.throttle.wait()

        url = self.project_url(project)
        logger.debug(f"GET {url}")
        try:
            resp = await self.client.get(
                url,
                headers={"User-Agent": self.config.user_agent},
                timeout=self.config.catalog_timeout,
            )
        except httpx.RequestError as e:
            self.breaker.record_failure()
            raise CatalogUnreachableError(project, f"{type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            self.breaker.record_failure()
            raise CatalogUnreachableError(project, f"HTTP {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError as e:
            self.breaker.record_failure()
            raise CatalogUnreachableError(project, "response is not JSON") from e
        if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
            self.breaker.record_failure()
            raise CatalogUnreachableError(project, "response is not a list of packages")

        self.breaker.record_success()
        records = []
        for item in payload:
            if "repo" not in item or "version" not in item:
                logger.debug(f"Dropping incomplete repology entry for {project}: {item}")
                continue
            records.append(CatalogRecord.from_dict(item))
        logger.info(f"[Repology] {project}: {len(records)} records")
        return records
