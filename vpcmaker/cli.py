"""
Click CLI for provisioning and tearing down a VPC with bastion hosts.
"""

import json
import logging
import sys
from typing import Optional

import click
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from .config import load_config
from .credentials import create_session, has_credentials, load_credentials, save_credentials
from .errors import VpcMakerError
from .home import credentials_path, ensure_home, get_home, key_path
from .output import FORMATS, dump_bastions, write_bastions
from .provision import make_vpc
from .teardown import delete_vpc
from .waiters import WaitSettings

FAILURES = (VpcMakerError, FileNotFoundError, ClientError, BotoCoreError)


def _fail(message: str) -> None:
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


def _session(home, config):
    credentials = load_credentials(credentials_path(home))
    return create_session(credentials, config.region)


@click.group()
@click.option("--config-dir", type=click.Path(file_okay=False), help="Directory for credentials and key files (default: $VPCMAKER_HOME or .vpcmaker)")
@click.option("--verbose", "-v", is_flag=True, help="Show polling and lookup details")
@click.pass_context
def main(ctx, config_dir: Optional[str], verbose: bool):
    """vpcmaker - Idempotent VPC and bastion host provisioning."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
    )
    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["home"] = get_home(config_dir)


@main.command()
@click.option("--access-key-id", prompt=True, help="AWS access key ID")
@click.option("--secret-access-key", prompt=True, hide_input=True, help="AWS secret access key")
@click.pass_context
def configure(ctx, access_key_id: str, secret_access_key: str):
    """Save AWS credentials to the config directory."""
    home = ensure_home(ctx.obj["home"])
    path = save_credentials(credentials_path(home), access_key_id, secret_access_key)
    click.echo(f"🔑 Credentials saved to {path}")


@main.command()
@click.argument("config_file", type=click.Path(dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write bastion descriptors to this file")
@click.option("--format", "output_format", type=click.Choice(FORMATS), default="yaml", help="Descriptor format")
@click.option("--timeout", type=float, default=600.0, show_default=True, help="Seconds to wait for each resource")
@click.pass_context
def up(ctx, config_file: str, output: Optional[str], output_format: str, timeout: float):
    """Provision the VPC and one bastion host per subnet."""
    home = ctx.obj["home"]
    try:
        config = load_config(config_file)
        session = _session(home, config)
        ensure_home(home)
        bastions = make_vpc(config, session, key_path(home), WaitSettings(timeout=timeout))
    except KeyboardInterrupt:
        _fail("Provisioning cancelled by user")
    except FAILURES as e:
        _fail(f"Provisioning failed: {e}")

    if output:
        path = write_bastions(bastions, output, output_format)
        click.echo(f"📝 Bastion descriptors written to {path}")
    else:
        click.echo(dump_bastions(bastions, output_format), nl=False)


@main.command()
@click.argument("config_file", type=click.Path(dir_okay=False))
@click.option("--settle-seconds", type=float, default=5.0, show_default=True, help="Pause after revoking security group rules")
@click.option("--timeout", type=float, default=600.0, show_default=True, help="Seconds to wait for instances to terminate")
@click.pass_context
def down(ctx, config_file: str, settle_seconds: float, timeout: float):
    """Delete the VPC and everything in it."""
    try:
        config = load_config(config_file)
        session = _session(ctx.obj["home"], config)
        report = delete_vpc(config, session, WaitSettings(timeout=timeout), settle_seconds=settle_seconds)
    except KeyboardInterrupt:
        _fail("Teardown cancelled by user")
    except FAILURES as e:
        _fail(f"Teardown failed: {e}")

    if report.vpc_id is None:
        click.echo(f"Nothing to delete: no [{config.name}] vpc")
        return

    click.echo(f"🗑️  Deleted {report.total} resources of [{config.name}]")
    click.echo(f"  • instances: {len(report.instances)}")
    click.echo(f"  • elastic ips: {len(report.elastic_ips)}")
    click.echo(f"  • security groups: {len(report.security_groups)}")
    click.echo(f"  • subnets: {len(report.subnets)}")
    click.echo(f"  • route tables: {len(report.route_tables)}")
    click.echo(f"  • internet gateways: {len(report.internet_gateways)}")
    click.echo(f"  • vpc: {report.vpc_id}")


@main.command()
@click.argument("config_file", type=click.Path(dir_okay=False))
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
@click.pass_context
def show(ctx, config_file: str, output_json: bool):
    """Validate a configuration and show the local state, without calling AWS."""
    home = ctx.obj["home"]
    try:
        config = load_config(config_file)
    except FAILURES as e:
        _fail(str(e))

    data = {
        "config": config.model_dump(mode="json"),
        "credentials": str(credentials_path(home)),
        "credentials_present": has_credentials(credentials_path(home)),
        "key_file": str(key_path(home)),
        "key_file_present": key_path(home).is_file(),
    }

    if output_json:
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), nl=False)


if __name__ == "__main__":
    main()
