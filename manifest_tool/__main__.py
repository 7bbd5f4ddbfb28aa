import logging
import logging.config
from pathlib import Path

import click

from manifest_tool import oci
from manifest_tool.oci.auth import config_dir
from manifest_tool.render import Palette, check_options, inspect as inspect_image

logger = logging.getLogger(__name__)


def logging_config(debug: bool = False) -> dict:
    level = "DEBUG" if debug else "WARNING"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(levelname)s[%(name)s] %(message)s",
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "httpcore": {"level": "INFO" if debug else "WARNING"},
        },
        "root": {"handlers": ["default"], "level": level},
    }


def _docker_cfg(ctx, param, value: Path | None) -> Path:
    """Point --docker-cfg at a config.json file

    The default location may not exist, a user provided one must.
    """
    if value is None:
        return config_dir() / "config.json"
    if not value.exists():
        raise click.BadParameter(f"{value} does not exist", ctx=ctx, param=param)
    if value.is_dir():
        return value / "config.json"
    return value


class Registry:
    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        insecure: bool = False,
        plain_http: bool = False,
        docker_cfg: Path | None = None,
    ):
        self.username = username
        self.password = password
        self.insecure = insecure
        self.plain_http = plain_http
        self.docker_cfg = docker_cfg

    def client(self, reference: oci.Reference) -> oci.Client:
        return oci.create_client(
            reference,
            username=self.username,
            password=self.password,
            insecure=self.insecure,
            plain_http=self.plain_http,
            docker_cfg=self.docker_cfg,
        )


@click.group()
@click.version_option(package_name="manifest-tool")
@click.option("-d", "--debug", help="Enable debug output", is_flag=True)
@click.option(
    "--insecure", help="Allow insecure registry communication", is_flag=True
)
@click.option(
    "--plain-http", help="Allow registry communication over plain http", is_flag=True
)
@click.option(
    "-u",
    "--username",
    help="Registry username",
    envvar="MANIFEST_TOOL_USERNAME",
    default=None,
)
@click.option(
    "-p",
    "--password",
    help="Registry password",
    envvar="MANIFEST_TOOL_PASSWORD",
    default=None,
)
@click.option(
    "--docker-cfg",
    help=(
        "Either a directory containing a Docker-formatted config.json "
        "or a specific JSON file formatted for registry auth"
    ),
    type=click.Path(path_type=Path),
    default=None,
    callback=_docker_cfg,
)
@click.pass_context
def cli(ctx, debug, insecure, plain_http, username, password, docker_cfg):
    """Registry client to inspect multi-platform OCI & Docker v2 images."""
    logging.config.dictConfig(logging_config(debug))
    ctx.obj = Registry(
        username=username,
        password=password,
        insecure=insecure,
        plain_http=plain_http,
        docker_cfg=docker_cfg,
    )


@cli.command()
@click.argument("reference")
@click.option("--raw", help="Raw JSON output", is_flag=True)
@click.option(
    "--expand-config",
    help="Expand image config content in raw JSON output",
    is_flag=True,
)
@click.pass_context
def inspect(ctx, reference: str, raw: bool, expand_config: bool):
    """Fetch image manifests in a container registry."""
    obj: Registry = ctx.ensure_object(Registry)
    try:
        check_options(raw=raw, expand_config=expand_config)
        image_ref = oci.parse_reference(reference).require_tag()
    except oci.ManifestToolError as e:
        raise click.UsageError(str(e), ctx=ctx)

    try:
        client = obj.client(image_ref)
    except oci.RegistryHostError as e:
        raise click.ClickException(f"error creating registry host configuration: {e}")

    store = oci.MemoryStore()
    with client:
        try:
            descriptor = oci.fetch_descriptor(client, image_ref, store)
        except oci.ResolutionError as e:
            # The empty descriptor fails at the store lookup
            logger.error(e)
            descriptor = oci.EMPTY_DESCRIPTOR

    try:
        inspect_image(
            name=reference,
            descriptor=descriptor,
            store=store,
            raw=raw,
            expand_config=expand_config,
            palette=Palette(),
        )
    except oci.ManifestToolError as e:
        raise click.ClickException(str(e))


if __name__ == "__main__":
    cli()
