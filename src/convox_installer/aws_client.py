"""AWS CLI wrapper for the S3 bucket operations the installer needs"""

from __future__ import annotations

import copy
import json
import logging
import os
import shlex
import tempfile
from pathlib import Path
from typing import Any

from convox_installer.command_runner import CommandResult, CommandRunner

LOGGER = logging.getLogger(__name__)

SORTED_CORS_RULE_KEYS = ("AllowedHeaders", "AllowedMethods", "AllowedOrigins")


def normalize_cors_policy(policy: Any) -> Any:
    """Copy of a CORS policy with the unordered lists of each rule sorted"""
    normalized = copy.deepcopy(policy)
    if not isinstance(normalized, dict):
        return normalized

    rules: list[Any] = normalized.get("CORSRules") or []
    for rule in rules:
        if isinstance(rule, dict):
            _normalize_rule(rule)

    # A bare rule (no CORSRules wrapper) is compared the same way
    _normalize_rule(normalized)
    return normalized


def _normalize_rule(rule: dict[str, Any]) -> None:
    # Empty lists may be missing from get-bucket-cors output
    for key in [key for key, value in rule.items() if value == []]:
        del rule[key]
    for key in SORTED_CORS_RULE_KEYS:
        if isinstance(rule.get(key), list):
            rule[key] = sorted(rule[key])


def cors_policies_equal(existing: Any, expected: Any) -> bool:
    return normalize_cors_policy(existing) == normalize_cors_policy(expected)


class AWSClient:
    """Runs ``aws`` commands with the admin credentials passed through the environment"""

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        region: str,
        runner: CommandRunner | None = None,
    ) -> None:
        self.region: str = region
        self.runner: CommandRunner = runner or CommandRunner()
        self.env: dict[str, str] = {
            "AWS_ACCESS_KEY_ID": access_key_id,
            "AWS_SECRET_ACCESS_KEY": secret_access_key,
            "AWS_DEFAULT_REGION": region,
        }

    def run(self, cmd: str, capture: bool = True) -> CommandResult:
        return self.runner.run(f"aws {cmd}", env=self.env, capture=capture)

    def s3_bucket_exists(self, bucket_name: str) -> bool:
        """Check if the bucket exists and is accessible with these credentials"""
        LOGGER.debug("Searching for existing S3 bucket %s...", bucket_name)
        exists: bool = self.run(f"s3api head-bucket --bucket {shlex.quote(bucket_name)}").success
        LOGGER.debug("Found existing S3 bucket." if exists else "S3 bucket does not exist.")
        return exists

    def get_bucket_cors(self, bucket_name: str) -> Any | None:
        """The bucket's current CORS policy, or None when it has no policy"""
        LOGGER.debug("Looking up existing CORS policy for %s", bucket_name)
        result: CommandResult = self.run(f"s3api get-bucket-cors --bucket {shlex.quote(bucket_name)}")
        if not result.success or not result.stdout.strip():
            return None
        return json.loads(result.stdout)

    def put_bucket_cors(self, bucket_name: str, policy: str) -> None:
        """Replace the bucket's CORS policy with the given JSON document"""
        fd, policy_file = tempfile.mkstemp(prefix="cors-policy-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(policy)
            self.runner.run_checked(
                f"aws s3api put-bucket-cors --bucket {shlex.quote(bucket_name)} "
                f"--cors-configuration file://{Path(policy_file).as_posix()}",
                env=self.env,
            )
        finally:
            Path(policy_file).unlink(missing_ok=True)
