from __future__ import annotations

import json

import pytest

from convox_installer.command_runner import CommandResult
from convox_installer.errors import MissingConfigError
from convox_installer.installation import PROMPTS, env_set_params, run_installation
from convox_installer.installer import ConvoxInstaller
from convox_installer.requirements import Requirements

ENVIRON = {
    "STACK_NAME": "demo",
    "AWS_REGION": "us-east-1",
    "INSTANCE_TYPE": "t3.medium",
    "AWS_ACCESS_KEY_ID": "A",
    "AWS_SECRET_ACCESS_KEY": "B",
    "DOCKER_REGISTRY_USERNAME": "user",
    "DOCKER_REGISTRY_PASSWORD": "pass",
    "ADMIN_EMAIL": "admin@example.com",
}

RACK_DATA = {"name": "demo", "provider": "aws", "region": "us-east-1", "status": "running", "domain": "rack.example.com"}


class AllInstalled(Requirements):
    def find_command(self, command: str) -> str | None:
        return f"/usr/local/bin/{command}"


class FakeHealthyResponse:
    status_code = 200


class FakeConvox:
    """Simulates the convox CLI creating the rack, app and registry"""

    def __init__(self, paths, runner) -> None:
        self.paths = paths
        self.apps: list[str] = []
        self.registries: list[str] = []
        runner.responses["convox rack install"] = self.install
        runner.responses["convox api get /system"] = lambda c: CommandResult(c, 0, stdout=json.dumps(RACK_DATA))
        runner.responses["convox apps --rack"] = lambda c: CommandResult(c, 0, stdout="APP STATUS\n" + "".join(f"{a} running\n" for a in self.apps))
        runner.responses["convox apps create"] = self.create_app
        runner.responses["convox registries --rack"] = lambda c: CommandResult(c, 0, stdout="\n".join(self.registries))
        runner.responses["convox registries add"] = self.add_registry
        runner.responses["terraform apply"] = self.apply
        runner.respond("aws s3api get-bucket-cors", exit_status=254)

    def install(self, command):
        self.paths.rack_dir("demo").mkdir(parents=True)
        return CommandResult(command, 0)

    def create_app(self, command):
        self.apps.append(command.split()[3])
        return CommandResult(command, 0)

    def add_registry(self, command):
        self.registries.append(command.split()[3])
        return CommandResult(command, 0)

    def apply(self, command):
        state = {
            "resources": [
                {"type": "aws_s3_bucket", "name": "uploads", "instances": [{"attributes": {"bucket": "uploads-bucket"}}]},
                {"type": "aws_iam_access_key", "name": "uploads", "instances": [{"attributes": {"id": "AK", "secret": "SK"}}]},
                {
                    "type": "aws_db_instance",
                    "name": "database",
                    "instances": [{"attributes": {"username": "u", "password": "p", "endpoint": "db:5432", "db_name": "app"}}],
                },
                {
                    "type": "aws_elasticache_cluster",
                    "name": "cache",
                    "instances": [{"attributes": {"cache_nodes": [{"address": "redis", "port": 6379}]}}],
                },
            ]
        }
        self.paths.terraform_state_file("demo").write_text(json.dumps(state))
        return CommandResult(command, 0)


@pytest.fixture
def installer(paths, runner, sleeper, make_terminal, monkeypatch):
    monkeypatch.delenv("DEBUG_TERRAFORM", raising=False)
    installer = ConvoxInstaller(
        paths,
        prompts=PROMPTS,
        terminal=make_terminal("y\ny\n"),
        runner=runner,
        requirements=AllInstalled(),
        sleep=sleeper,
        environ=ENVIRON,
    )
    installer.client.http_get = lambda url, timeout: FakeHealthyResponse()
    return installer


def test_full_installation(installer, paths, runner):
    FakeConvox(paths, runner)

    run_installation(installer)

    assert all(result["success"] for result in installer.results.values())
    assert runner.commands.count("convox rack install aws demo node_type=t3.medium region=us-east-1") == 1
    assert "convox apps create convox-app --wait --rack demo" in runner.commands
    assert "terraform apply -auto-approve" in runner.commands
    assert any(c.startswith("aws s3api put-bucket-cors") for c in runner.commands)

    env_set = next(c for c in runner.commands if c.startswith("convox env set HEALTH_CHECK_PATH=/health/site"))
    assert "DOMAIN_NAME=web.convox-app.rack.example.com" in env_set
    assert "DATABASE_URL=postgres://u:p@db:5432/app" in env_set
    assert "REDIS_URL=redis://redis:6379/0" in env_set
    assert "convox deploy --wait --app convox-app --rack demo" in runner.commands

    assert json.loads(paths.current_file.read_text()) == {"name": "demo", "type": "terraform"}
    saved = json.loads(paths.installer_config_file.read_text())["config"]
    assert saved["stack_name"] == "demo"
    assert len(saved["admin_password"]) == 16


def test_rerun_skips_resources_that_exist(installer, paths, runner):
    FakeConvox(paths, runner)
    run_installation(installer)
    first_run = list(runner.commands)
    runner.calls.clear()

    run_installation(installer)

    assert not any(c.startswith("convox rack install") for c in runner.commands)
    assert not any(c.startswith("convox apps create") for c in runner.commands)
    assert not any(c.startswith("convox registries add") for c in runner.commands)
    assert len(runner.commands) < len(first_run)


def test_failed_step_is_recorded(installer, runner):
    installer.config.set("instance_type", "")

    with pytest.raises(MissingConfigError):
        installer.install_convox()

    assert installer.results["install_convox"] == {
        "success": False,
        "details": "MissingConfigError: instance_type is missing from the config!",
    }
    assert runner.commands == []


def test_env_set_params_quotes_values():
    assert env_set_params({"A": "1", "B": "two words"}) == "A=1 B='two words'"
