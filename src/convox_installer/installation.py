"""The installation script: prompts plus the ordered provisioning steps"""

from __future__ import annotations

import json
import secrets
import shlex

from rich.console import Console

from convox_installer.config import DEFAULT_PROMPTS, PromptSpec
from convox_installer.installer import ConvoxInstaller

CONSOLE: Console = Console()

MINIMAL_HEALTH_CHECK_PATH = "/health/site"
COMPLETE_HEALTH_CHECK_PATH = "/health"

S3_BUCKET_CORS_POLICY: str = json.dumps(
    {
        "CORSRules": [
            {
                "AllowedHeaders": ["Authorization", "cache-control", "x-requested-with"],
                "AllowedMethods": ["PUT", "POST", "GET"],
                "AllowedOrigins": ["*"],
                "ExposeHeaders": [],
                "MaxAgeSeconds": 3000,
            }
        ]
    },
    indent=2,
)

PROMPTS: list[PromptSpec] = DEFAULT_PROMPTS + [
    PromptSpec(
        section="Docker Registry Authentication",
        info="You should have received authentication details for the Docker Registry\n"
        "via email. If not, please contact support@example.com",
    ),
    PromptSpec(key="docker_registry_url", title="Docker Registry URL", value="691950705664.dkr.ecr.us-east-1.amazonaws.com"),
    PromptSpec(key="docker_registry_username", title="Docker Registry Username"),
    PromptSpec(key="docker_registry_password", title="Docker Registry Password"),
    PromptSpec(key="convox_app_name", title="Convox App Name", value="convox-app"),
    PromptSpec(key="default_service", title="Default Convox Service (for domain)", value="web", hidden=True),
    PromptSpec(
        key="admin_email",
        title="Admin User Email",
        prompt="Please enter the email address you would like to use for the default admin user",
        default="admin@example.com",
    ),
    PromptSpec(key="admin_password", title="Admin User Password", value=lambda: secrets.token_hex(8)),
    PromptSpec(key="s3_bucket_name", title="S3 Bucket for Uploads", value=lambda: f"app-uploads-{secrets.token_hex(4)}"),
    PromptSpec(key="s3_bucket_cors_policy", value=S3_BUCKET_CORS_POLICY, hidden=True),
    PromptSpec(key="database_username", value="example_app", hidden=True),
    PromptSpec(key="database_password", value=lambda: secrets.token_hex(16), hidden=True),
    PromptSpec(key="secret_key_base", value=lambda: secrets.token_hex(64), hidden=True),
    PromptSpec(key="data_encryption_key", value=lambda: secrets.token_hex(32), hidden=True),
]


def env_set_params(env: dict[str, str]) -> str:
    return " ".join(f"{key}={shlex.quote(str(value))}" for key, value in env.items())


def run_installation(installer: ConvoxInstaller) -> None:
    installer.ensure_requirements()
    config = installer.prompt_for_config()

    installer.backup_convox_config()
    installer.install_convox()
    installer.validate_convox_rack_and_write_current()
    installer.validate_convox_rack_api()

    installer.create_convox_app()
    installer.set_default_app_for_directory()
    installer.add_docker_registry()

    installer.add_s3_bucket()
    installer.add_rds_database()
    installer.add_elasticache_cluster()
    installer.apply_terraform_update()
    installer.wait_for_s3_bucket()
    installer.set_s3_bucket_cors_policy()

    s3_bucket = installer.s3_bucket_details()
    domain_name = installer.default_service_domain_name()

    CONSOLE.print(f"======> Default domain: {domain_name}")
    CONSOLE.print("        You can use this as a CNAME record after configuring a domain in convox.yml")
    CONSOLE.print("        (Note: SSL will be configured automatically.)")

    CONSOLE.print("[yellow]Setting environment variables to configure the application...[/yellow]")
    app_name = config["convox_app_name"]
    env: dict[str, str] = {
        "HEALTH_CHECK_PATH": MINIMAL_HEALTH_CHECK_PATH,
        "DOMAIN_NAME": domain_name,
        "AWS_ACCESS_KEY_ID": s3_bucket["access_key_id"],
        "AWS_ACCESS_KEY_SECRET": s3_bucket["secret_access_key"],
        "AWS_UPLOADS_S3_BUCKET": s3_bucket["name"],
        "AWS_UPLOADS_S3_REGION": config["aws_region"],
        "DATABASE_URL": installer.rds_details()["postgres_url"],
        "REDIS_URL": installer.elasticache_details()["url"],
        "SECRET_KEY_BASE": config["secret_key_base"],
        "DATA_ENCRYPTION_KEY": config["data_encryption_key"],
        "ADMIN_NAME": "Admin",
        "ADMIN_EMAIL": config["admin_email"],
        "ADMIN_PASSWORD": config["admin_password"],
    }
    installer.run_convox_command(f"env set {env_set_params(env)} --app {shlex.quote(app_name)}")

    CONSOLE.print("[yellow]Initial deploy...[/yellow]")
    CONSOLE.print("-----> Documentation: https://docs.convox.com/deployment/deploying-changes/")
    installer.run_convox_command(f"deploy --wait --app {shlex.quote(app_name)}")

    CONSOLE.print("[yellow]Setting up the database...[/yellow]")
    installer.run_convox_command(f"run web rake db:create db:migrate db:seed --app {shlex.quote(app_name)}")

    CONSOLE.print("[yellow]Updating the health check path to include database tests...[/yellow]")
    installer.run_convox_command(
        f"env set --promote --wait HEALTH_CHECK_PATH={COMPLETE_HEALTH_CHECK_PATH} --app {shlex.quote(app_name)}"
    )

    installer.wait_for_url(f"https://{domain_name}{COMPLETE_HEALTH_CHECK_PATH}")

    print_next_steps(installer, domain_name, s3_bucket["name"])


def print_next_steps(installer: ConvoxInstaller, domain_name: str, bucket_name: str) -> None:
    config = installer.config.values

    CONSOLE.print("\n[bold green]All done![/bold green]\n")
    CONSOLE.print(f"You can now visit {domain_name} and sign in with:\n")
    CONSOLE.print(f"    Email:    {config['admin_email']}")
    CONSOLE.print(f"    Password: {config['admin_password']}\n")
    CONSOLE.print("You can configure a custom domain name, auto-scaling, and other options in convox.yml.")
    CONSOLE.print("To deploy your changes, run: convox deploy --wait\n")
    CONSOLE.print(
        "[bold]IMPORTANT:[/bold] You should be very careful with the terraform files in "
        f"{installer.client.rack_dir}.\n"
        "If you remove, rename, or change the database resources, then terraform will delete\n"
        "your database. This will result in downtime and a loss of data.\n"
        "To prevent this from happening, you can sign into your AWS account,\n"
        'visit the RDS and ElastiCache services, and enable "Termination Protection"\n'
        "for your database resources.\n"
    )
    CONSOLE.print("[bold cyan]To completely uninstall Convox from your AWS account,[/bold cyan]")
    CONSOLE.print("run the following steps (in this order):\n")
    CONSOLE.print(' 1) Disable "Termination Protection" for any resource where it was enabled.\n')
    CONSOLE.print(f" 2) Delete all files from the {bucket_name} S3 bucket:\n")
    CONSOLE.print(f"    aws s3 rm s3://{bucket_name} --recursive\n")
    CONSOLE.print(" 3) Uninstall Convox (deletes all AWS resources created for the rack):\n")
    CONSOLE.print(f"    convox rack uninstall {config['stack_name']}\n")
