"""Pytest configuration and shared fixtures for the daylog test suite.

Test classification markers (unit/component/integration) are defined in
pyproject.toml [tool.pytest.ini_options].markers.

Shared fixtures keep every test away from the developer's real config,
environment, and AWS account.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from faker import Faker

from daylog.lambda_handler import get_command_handler
from tests.factories import SECRET

ENV_VARS = (
    "DAYLOG_CONFIG",
    "DAYLOG_COMMAND_TOKEN",
    "DAYLOG_TOKEN_SECRET_ID",
    "DAYLOG_TIMEZONE",
    "DAYLOG_LOG_LEVEL",
    "AWS_REGION",
    "AWS_LAMBDA_FUNCTION_NAME",
)



# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Hide real env vars, ~/.daylog files and the cached cold-start handler."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DAYLOG_CONFIG", str(tmp_path / "missing-config.yaml"))
    monkeypatch.setattr("daylog.config.DEFAULT_ENV_FILE", str(tmp_path / "missing.env"))
    get_command_handler.cache_clear()
    yield
    get_command_handler.cache_clear()


# ---------------------------------------------------------------------------
# Faker instance
# ---------------------------------------------------------------------------

@pytest.fixture
def fake(request):
    """Provide a Faker instance seeded from the test node id.

    Same test → same seed → same data. Different tests → independent data.
    """
    f = Faker()
    f.seed_instance(hash(request.node.nodeid) % (2**32))
    return f


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@pytest.fixture
def fixed_now():
    return datetime(2017, 8, 24, 9, 30)


@pytest.fixture
def fixed_clock(fixed_now):
    """Clock pinned to Thursday 24 August 2017."""
    return lambda: fixed_now


# ---------------------------------------------------------------------------
# AWS mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_secrets_client():
    """Stub for boto3 secretsmanager client.

    Returns a JSON secret holding the test token by default.
    Customize: mock_secrets_client.get_secret_value.return_value = ...
    """
    client = MagicMock()
    client.get_secret_value.return_value = {
        "ARN": "arn:aws:secretsmanager:us-east-1:123456789012:secret:daylog-AbCdEf",
        "Name": "daylog",
        "SecretString": '{"token": "%s"}' % SECRET,
    }
    return client


# ---------------------------------------------------------------------------
# Skip ratio visibility
# ---------------------------------------------------------------------------

def pytest_terminal_summary(terminalreporter, exitstatus, config):
    """Warn when more than 10% of collected tests were skipped."""
    passed = len(terminalreporter.stats.get("passed", []))
    skipped = len(terminalreporter.stats.get("skipped", []))
    total = passed + skipped

    if total > 0 and skipped > 0:
        skip_ratio = skipped / total
        terminalreporter.write_sep("-", "skip ratio report")
        terminalreporter.write_line(
            f"SKIP RATIO: {skipped}/{total} tests skipped ({skip_ratio:.1%})"
        )
        if skip_ratio > 0.10:
            terminalreporter.write_line(
                "    > 10% threshold exceeded, review skip reasons."
            )
