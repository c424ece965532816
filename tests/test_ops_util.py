"""
Operations CLI tests.
"""

from unittest.mock import patch

from scripts.ops_util import main
from src.core.context import Context
from src.core.db import health_check


def test_init_db(capfd, temp_db):
    assert main(["init-db"]) == 0

    captured = capfd.readouterr()
    assert "Database initialized" in captured.out
    assert health_check() is True


def test_check_config_ok(capfd, services):
    assert main(["check-config"]) == 0
    assert "Configuration OK" in capfd.readouterr().out


def test_check_config_reports_issues(capfd, services):
    with patch.dict("os.environ", {"ACTION_SCOREREVIEWACTION_MAX_VALUE": "lots"}):
        assert main(["check-config"]) == 1

    captured = capfd.readouterr()
    assert "Invalid action.scorereviewaction.max-value: lots" in captured.out


def test_reviewer_pool_unconfigured(capfd, services):
    with patch.dict("os.environ", {"ACTION_SELECTREVIEWERACTION_GROUP": ""}):
        assert main(["reviewer-pool"]) == 0
    assert "No reviewer pool resolved" in capfd.readouterr().out


def test_reviewer_pool_lists_members(capfd, services, reviewers):
    admin = Context(admin=True)
    group = services.identity.create_group(admin, "Professores")
    for reviewer in reviewers:
        services.identity.add_member(admin, group, reviewer)

    with patch.dict("os.environ", {"ACTION_SELECTREVIEWERACTION_GROUP": "Professores"}):
        assert main(["reviewer-pool", "--limit", "2"]) == 0

    captured = capfd.readouterr()
    assert "Members: 3" in captured.out
    assert "ana@example.org" in captured.out
    assert "carla@example.org" not in captured.out
    assert "and 1 more" in captured.out


def test_serve_runs_uvicorn(temp_db):
    with patch("uvicorn.run") as mock_run:
        assert main(["serve", "--port", "9001"]) == 0

    mock_run.assert_called_once_with("src.api.main:app", host="127.0.0.1", port=9001, reload=False)


def test_no_command_prints_help(capfd):
    assert main([]) == 1
    assert "usage" in capfd.readouterr().out.lower()
