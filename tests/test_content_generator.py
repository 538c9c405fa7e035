"""Tests for the content generator client."""

import httpx
import pytest

from app.clients.content_generator import ContentGeneratorClient
from app.core.exceptions import ExternalUnavailableError
from app.schemas.progression import CommitmentTier, ProblemRequest


@pytest.fixture
def problem_request():
    return ProblemRequest(
        topic="algebra",
        target_b=-0.51,
        grade=7,
        theta=0.0,
        previous_problems=["x + 1 = 2"],
    )


class TestGenerateProblem:

    async def test_request_shape(self, content_client, generator, problem_request):
        problem = await content_client.generate_problem(problem_request)

        path, payload = generator.requests[0]
        assert path == "/api/problems/generate"
        assert payload == {
            "topic": "algebra",
            "theta": 0.0,
            "grade": 7,
            "previous_problems": ["x + 1 = 2"],
        }
        assert problem.topic == "algebra"
        assert problem.options == ["1", "2", "3", "4"]
        assert problem.irt.b == pytest.approx(-0.85)

    async def test_irt_defaults(self, content_client, generator, problem_request):
        generator.body = {
            "problem": {
                "content": "Solve 2x = 4",
                "options": ["1", "2"],
                "correct_answer": 2,
                "topic": "algebra",
                "irt": {"b": 0.3},
            }
        }

        problem = await content_client.generate_problem(problem_request)

        assert problem.irt.a == 1.0
        assert problem.irt.c == 0.2
        assert problem.correct_answer == 2

    async def test_server_error(self, content_client, generator, problem_request):
        generator.status_code = 500

        with pytest.raises(ExternalUnavailableError) as exc_info:
            await content_client.generate_problem(problem_request)

        assert exc_info.value.details["status_code"] == 500
        assert len(generator.requests) == 1

    async def test_missing_problem(self, content_client, generator, problem_request):
        generator.body = {"error": "nothing here"}

        with pytest.raises(ExternalUnavailableError):
            await content_client.generate_problem(problem_request)

    async def test_invalid_problem(self, content_client, generator, problem_request):
        generator.body = {"problem": {"content": "no irt block", "topic": "algebra"}}

        with pytest.raises(ExternalUnavailableError):
            await content_client.generate_problem(problem_request)

    async def test_malformed_json(self, problem_request):
        def handler(request):
            return httpx.Response(200, content=b"<html>oops</html>")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = ContentGeneratorClient(http_client, base_url="http://generator.test")
            with pytest.raises(ExternalUnavailableError):
                await client.generate_problem(problem_request)

    async def test_timeout(self, problem_request):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = ContentGeneratorClient(http_client, base_url="http://generator.test")
            with pytest.raises(ExternalUnavailableError):
                await client.generate_problem(problem_request)

    async def test_connection_error(self, problem_request):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = ContentGeneratorClient(http_client, base_url="http://generator.test")
            with pytest.raises(ExternalUnavailableError):
                await client.generate_problem(problem_request)


class TestGenerateImmersionProblem:

    async def test_request_shape(self, content_client, generator):
        problem = await content_client.generate_immersion_problem(
            grade=8, theta=0.4, tier=CommitmentTier.THREE_DAYS, topic="functions"
        )

        path, payload = generator.requests[0]
        assert path == "/api/problems/immersion"
        assert payload == {"grade": 8, "theta": 0.4, "difficulty": "3days", "topic": "functions"}
        assert problem.estimated_time == "1 hour"
        assert problem.hints == ["Start small", "Look for structure"]

    async def test_topic_omitted_when_not_given(self, content_client, generator):
        await content_client.generate_immersion_problem(grade=5, theta=-0.2, tier=CommitmentTier.FIVE_MINUTES)

        _, payload = generator.requests[0]
        assert "topic" not in payload
        assert payload["difficulty"] == "5min"
