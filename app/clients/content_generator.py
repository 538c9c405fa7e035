"""HTTP client for the external problem content generator."""

from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from app.core.exceptions import ExternalUnavailableError
from app.schemas.api import GeneratedProblem, ImmersionProblem
from app.schemas.progression import CommitmentTier, ProblemRequest

logger = structlog.get_logger()

GENERATE_PATH = "/api/problems/generate"
IMMERSION_PATH = "/api/problems/immersion"


class ContentGeneratorClient:
    """Thin wrapper over the generator's two POST endpoints.

    Every failure (transport error, timeout, non-2xx status, unparseable
    body) surfaces as ``ExternalUnavailableError``. There are no retries;
    the caller decides whether to ask again.
    """

    def __init__(self, http_client: httpx.AsyncClient, base_url: Optional[str] = None):
        self.http_client = http_client
        self.base_url = (base_url or settings.CONTENT_GENERATOR_URL).rstrip("/")

    async def generate_problem(self, request: ProblemRequest) -> GeneratedProblem:
        payload = {
            "topic": request.topic,
            "theta": request.theta,
            "grade": request.grade,
            "previous_problems": list(request.previous_problems),
        }
        data = await self._post(GENERATE_PATH, payload)
        problem = self._parse(GeneratedProblem, data, GENERATE_PATH)

        logger.debug(
            "Problem generated",
            topic=problem.topic,
            requested_b=request.target_b,
            returned_b=problem.irt.b,
        )
        return problem

    async def generate_immersion_problem(
        self,
        grade: int,
        theta: float,
        tier: CommitmentTier,
        topic: Optional[str] = None,
    ) -> ImmersionProblem:
        payload: Dict[str, Any] = {
            "grade": grade,
            "theta": theta,
            "difficulty": tier.value,
        }
        if topic:
            payload["topic"] = topic

        data = await self._post(IMMERSION_PATH, payload)
        return self._parse(ImmersionProblem, data, IMMERSION_PATH)

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.post(
                url,
                json=payload,
                timeout=settings.CONTENT_GENERATOR_TIMEOUT,
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.warning("Content generator timed out", path=path, error=str(e))
            raise ExternalUnavailableError("Content generator timed out", {"path": path}) from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Content generator returned an error",
                path=path,
                status_code=e.response.status_code,
            )
            raise ExternalUnavailableError(
                "Content generator returned an error",
                {"path": path, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Content generator unreachable", path=path, error=str(e))
            raise ExternalUnavailableError("Content generator unreachable", {"path": path}) from e
        except ValueError as e:
            # Body was not JSON
            logger.warning("Content generator sent malformed JSON", path=path)
            raise ExternalUnavailableError("Content generator sent malformed JSON", {"path": path}) from e

    @staticmethod
    def _parse(model: type, data: Any, path: str) -> BaseModel:
        if not isinstance(data, dict) or not isinstance(data.get("problem"), dict):
            raise ExternalUnavailableError("Content generator response has no problem", {"path": path})
        try:
            return model.model_validate(data["problem"])
        except ValidationError as e:
            logger.warning("Content generator sent an invalid problem", path=path, errors=e.error_count())
            raise ExternalUnavailableError(
                "Content generator sent an invalid problem",
                {"path": path},
            ) from e
