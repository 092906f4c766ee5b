"""CLI 命令测试（CliRunner + 进程内假用户服务）。"""
import pytest
from click.testing import CliRunner

from user_console import __version__
from user_console.cli import cli
from user_console.config import API_URL_ENV


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(API_URL_ENV, raising=False)
    monkeypatch.delenv("USER_CONSOLE_CONFIG", raising=False)


@pytest.fixture
def run(transport):
    runner = CliRunner()

    def _invoke(*args, **kwargs):
        return runner.invoke(cli, list(args), obj={"transport": transport}, **kwargs)

    return _invoke


class TestList:
    def test_lists_users(self, run, seeded):
        result = run("list")
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert "Alice Jones" in lines[0]
        assert "Jane Doe" in lines[2]
        assert "Showing 1 to 3 of 3 results" in result.output
        assert "Page 1 of 1" in result.output
        assert "Query: ?page=1&limit=10&sortBy=createdAt&sortOrder=DESC" in result.output

    def test_filters(self, run, db, seeded):
        result = run("list", "--country", "Canada", "--sort-by", "name", "--sort-order", "asc")
        assert result.exit_code == 0, result.output
        assert "John Smith" not in result.output
        assert "Active filters: 1" in result.output
        assert db.requests[-1][2] == {
            "country": "Canada", "page": "1", "limit": "10", "sortBy": "name", "sortOrder": "ASC",
        }

    def test_raw_query(self, run, db, seeded):
        result = run("list", "--query", "?search=john&limit=25&sortBy=bogus")
        assert result.exit_code == 0, result.output
        assert "John Smith" in result.output
        assert db.requests[-1][2]["sortBy"] == "createdAt"

    def test_empty_result(self, run):
        result = run("list")
        assert result.exit_code == 0
        assert "No users found" in result.output

    def test_invalid_date(self, run, db):
        result = run("list", "--from", "2024/01/01")
        assert result.exit_code == 1
        assert "Invalid date for --from" in result.output
        assert db.requests == []

    def test_server_failure(self, run, db):
        db.next_response = (500, {"error": True, "payload": "boom"})
        result = run("list")
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestGet:
    def test_get(self, run, seeded):
        result = run("get", str(seeded[1]["id"]))
        assert result.exit_code == 0, result.output
        assert "John Smith" in result.output
        assert "May 17, 1990" in result.output

    def test_not_found(self, run):
        result = run("get", "42")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_id(self, run, db):
        result = run("get", "abc")
        assert result.exit_code == 1
        assert "User ID is required" in result.output
        assert db.requests == []


class TestCreate:
    ARGS = (
        "--name", "Jane Doe", "--email", "new.user@example.com", "--mobile", "+15551234567",
        "--country", "Canada", "--birthday", "1990-05-17", "--about", "I enjoy building things.",
    )

    def test_create(self, run, db):
        result = run("create", *self.ARGS)
        assert result.exit_code == 0, result.output
        assert "User created successfully: Jane Doe (id=1)" in result.output
        assert db.users[1]["mobileNumber"] == "+15551234567"

    def test_validation_errors_are_listed(self, run, db):
        args = list(self.ARGS)
        args[args.index("--name") + 1] = "A"
        result = run("create", *args)
        assert result.exit_code == 1
        assert "name: Name is required and must be at least 2 characters" in result.output
        assert db.requests == []

    def test_duplicate_email(self, run, seeded):
        args = list(self.ARGS)
        args[args.index("--email") + 1] = "jane@example.com"
        result = run("create", *args)
        assert result.exit_code == 1
        assert "email: A user with this email already exists" in result.output


class TestUpdate:
    def test_update_single_field(self, run, db, seeded):
        result = run("update", str(seeded[0]["id"]), "--country", "Mexico")
        assert result.exit_code == 0, result.output
        assert db.users[seeded[0]["id"]]["country"] == "Mexico"
        assert db.users[seeded[0]["id"]]["name"] == "Jane Doe"

    def test_update_missing_user(self, run):
        result = run("update", "99", "--country", "Mexico")
        assert result.exit_code == 1


class TestDelete:
    def test_delete_with_yes(self, run, db, seeded):
        result = run("delete", str(seeded[0]["id"]), "--yes")
        assert result.exit_code == 0, result.output
        assert seeded[0]["id"] not in db.users

    def test_declined_confirmation(self, run, db, seeded):
        result = run("delete", str(seeded[0]["id"]), input="n\n")
        assert result.exit_code == 1
        assert seeded[0]["id"] in db.users


class TestCheck:
    def test_check_defaults(self, run):
        result = run("check")
        assert result.exit_code == 0
        assert "Config OK: (defaults)" in result.output
        assert "Timeout: 30s" in result.output

    def test_check_bad_file(self, run, tmp_path):
        path = tmp_path / "console.yaml"
        path.write_text("ui:\n  default_limit: 7\n")
        result = run("--config", str(path), "check")
        assert result.exit_code == 1
        assert "Config error" in result.output

    def test_version(self, run):
        result = run("--version")
        assert __version__ in result.output
