from __future__ import annotations

import json

from convox_installer.config import DEFAULT_PROMPTS, ConfigStore, PromptSpec
from convox_installer.prompts import SEPARATOR, PromptEngine


def output_of(terminal) -> str:
    return terminal.console.export_text()


def test_prompts_for_config_and_re_prompts_to_correct_mistakes(paths, make_terminal):
    store = ConfigStore(paths.installer_config_file, DEFAULT_PROMPTS)
    terminal = make_terminal(
        # first pass
        "\nus-north-12\n\nasdf\nxkcd\nn\n"
        # revision pass, every question defaults to the previous answer
        "formapi-test\n\n\nsdfg\n\ny\n"
    )

    config = PromptEngine(DEFAULT_PROMPTS, store, terminal).prompt_for_config()

    assert config == {
        "stack_name": "formapi-test",
        "aws_region": "us-north-12",
        "instance_type": "t3.medium",
        "aws_access_key_id": "sdfg",
        "aws_secret_access_key": "xkcd",
    }
    assert json.loads(paths.installer_config_file.read_text()) == {"config": config}

    output = output_of(terminal)
    assert output.count("SUMMARY") == 2
    assert "Admin AWS Credentials" in output
    assert "(us-north-12)" in output
    assert "    Convox Stack Name:       formapi-test" in output
    assert "    AWS Secret Access Key:   xkcd" in output


def test_empty_answer_without_default_is_asked_again(paths, make_terminal):
    prompts = [PromptSpec(key="aws_access_key_id", title="AWS Access Key ID")]
    store = ConfigStore(paths.installer_config_file, prompts)
    terminal = make_terminal("\n\nasdf\ny\n")

    config = PromptEngine(prompts, store, terminal).prompt_for_config()

    assert config == {"aws_access_key_id": "asdf"}
    assert output_of(terminal).count("Please enter your AWS Access Key ID") == 3


def test_existing_values_are_not_asked_on_the_first_pass(paths, make_terminal):
    store = ConfigStore(paths.installer_config_file, DEFAULT_PROMPTS)
    store.merge_overrides(
        {
            "stack_name": "demo",
            "aws_region": "us-east-1",
            "instance_type": "t3.medium",
            "aws_access_key_id": "A",
            "aws_secret_access_key": "B",
        }
    )
    terminal = make_terminal("y\n")

    PromptEngine(DEFAULT_PROMPTS, store, terminal).prompt_for_config()

    output = output_of(terminal)
    assert "Please enter" not in output
    assert "SUMMARY" in output
    assert "Would you like to start the Convox installation?" in output


def test_value_providers_are_never_asked_and_evaluated_once(paths, make_terminal):
    calls = []

    def generate_password():
        calls.append(1)
        return "99a6f67de0c7a117"

    prompts = [
        PromptSpec(section="ECR Authentication", info="Contact support@example.com for access"),
        PromptSpec(key="admin_email", title="Admin Email", default="admin@example.com"),
        PromptSpec(key="admin_password", title="Admin Password", value=generate_password),
        PromptSpec(key="cors_policy", value='{"CORSRules": []}', hidden=True),
    ]
    store = ConfigStore(paths.installer_config_file, prompts)
    terminal = make_terminal("\nn\nboss@example.com\ny\n")

    config = PromptEngine(prompts, store, terminal).prompt_for_config()

    assert config == {
        "admin_email": "boss@example.com",
        "admin_password": "99a6f67de0c7a117",
        "cors_policy": '{"CORSRules": []}',
    }
    assert len(calls) == 1

    output = output_of(terminal)
    assert "Admin Password" in output
    assert "Please enter your Admin Password" not in output
    assert "CORSRules" not in output
    assert output.count("ECR Authentication") == 2
    assert output.count("Contact support@example.com for access") == 2


def test_summary_is_aligned_to_the_longest_title(paths):
    prompts = [
        PromptSpec(key="a", title="Short"),
        PromptSpec(key="b", title="A Much Longer Title"),
        PromptSpec(key="c", title="Hidden", hidden=True),
    ]
    store = ConfigStore(paths.installer_config_file, prompts)
    store.merge_overrides({"a": "1", "b": "2", "c": "3"})

    lines = PromptEngine(prompts, store).summary_lines()

    width = len("A Much Longer Title") + 3
    assert lines == [
        f"    {'Short:'.ljust(width)} 1",
        f"    {'A Much Longer Title:'.ljust(width)} 2",
    ]


def test_confirmed_config_is_not_asked_again_on_the_next_run(paths, make_terminal):
    store = ConfigStore(paths.installer_config_file, DEFAULT_PROMPTS)
    terminal = make_terminal("\nus-north-12\n\nasdf\nxkcd\ny\ny\n")
    engine = PromptEngine(DEFAULT_PROMPTS, store, terminal)

    first = engine.prompt_for_config()
    second = engine.prompt_for_config()

    assert second == first
    output = output_of(terminal)
    assert output.count("Please enter") == 5
    assert output.count("SUMMARY") == 2


def test_info_without_a_section_is_shown_on_every_pass(paths, make_terminal):
    prompts = [PromptSpec(info="Ask your administrator for these details"), PromptSpec(key="a", title="A")]
    store = ConfigStore(paths.installer_config_file, prompts)
    terminal = make_terminal("1\nn\n2\ny\n")

    config = PromptEngine(prompts, store, terminal).prompt_for_config()

    assert config == {"a": "2"}
    output = output_of(terminal)
    assert output.count("Ask your administrator for these details") == 2
    assert output.count(SEPARATOR) == 4
