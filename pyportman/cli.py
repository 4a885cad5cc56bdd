"""CLI interface for pyportman."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import PostmanClient
from .classification import load_contract_settings, tag_contract_tests
from .collection import (
    Collection,
    load_collection,
    replace_in_collection,
    write_collection,
)
from .config import config
from .exceptions import PortmanConfigError, PortmanError, PostmanAPIError, SyncError
from .output import OutputFormatter
from .restructure import bundle_contract_tests
from .settings import load_replacements
from .sync import CollectionSync, SyncCache, WorkspaceRecord
from .utils import DEFAULT_CONTRACT_FOLDER, default_output_path
from .workspace_utils import format_workspace_display, list_workspaces

logger = logging.getLogger(__name__)


def _require_api_key(ctx: Any, out: OutputFormatter) -> None:
    if not config.is_configured() and not ctx.obj.get("api_key"):
        out.error("API key not configured.")
        out.info("Run 'pyportman init' or set POSTMAN_API_KEY")
        ctx.exit(1)


def _bundle(
    collection: Collection,
    settings_file: Optional[str],
    folder_name: str,
    out: OutputFormatter,
) -> Collection:
    """Tag contract-tested requests and move them into their own folder."""
    if not settings_file:
        raise PortmanConfigError(
            "Bundling contract tests requires --contract-tests-config"
        )
    settings = load_contract_settings(settings_file)
    tagged = tag_contract_tests(collection, settings)
    out.info(f"Moving {len(tagged)} contract-tested request(s) to '{folder_name}'")
    return bundle_contract_tests(collection, folder_name)


@click.group()
@click.option("--api-key", "-k", envvar="POSTMAN_API_KEY", help="Postman API key")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pyportman")
@click.pass_context
def main(
    ctx: Any,
    api_key: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PyPortman - Bundle and publish Postman collections."""
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyportman").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--api-key",
    "-k",
    prompt="Enter your Postman API key",
    hide_input=True,
    help="Postman API key",
)
@click.pass_context
def init(ctx: Any, api_key: str) -> None:
    """Validate and store your Postman API key."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        with PostmanClient(api_key=api_key) as client:
            user_info = client.get_me()
    except PostmanAPIError as e:
        out.error(f"Could not validate API key: {e}")
        ctx.exit(1)

    user = user_info.get("user") if isinstance(user_info, dict) else None
    if not user:
        out.error("Invalid API key")
        ctx.exit(1)

    out.success(f"API key is valid ({user.get('username') or user.get('id')})")
    config.save_api_key(api_key)
    out.success(f"Configuration saved successfully to {config.get_config_path()}")


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Check API key validity and show the logged in user."""
    out: OutputFormatter = ctx.obj["out"]
    _require_api_key(ctx, out)

    try:
        with PostmanClient(api_key=ctx.obj.get("api_key")) as client:
            user_info = client.get_me()
    except PortmanError as e:
        out.error(str(e))
        ctx.exit(1)

    user = user_info.get("user") if isinstance(user_info, dict) else None
    if not user:
        out.error("Invalid API key")
        ctx.exit(1)

    if out.json_output:
        out.output_json(user)
        return
    out.success("API key is valid")
    out.key_value("User", user.get("username", ""))
    out.key_value("Name", user.get("fullName", ""))
    out.key_value("Email", user.get("email", ""))


@main.command()
@click.pass_context
def workspaces(ctx: Any) -> None:
    """List the workspaces collections can be published to."""
    out: OutputFormatter = ctx.obj["out"]
    _require_api_key(ctx, out)

    try:
        with PostmanClient(api_key=ctx.obj.get("api_key")) as client:
            result = list_workspaces(client)
    except PortmanError as e:
        out.error(str(e))
        ctx.exit(1)

    if not result and not out.json_output:
        out.info("No workspaces found")
        return
    out.output_table(
        [ws.to_dict() for ws in result], ["id", "name", "type"], title="Workspaces"
    )


@main.command()
@click.argument("collection_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--contract-tests-config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Portman settings file (contractTests, globals.portmanReplacements)",
)
@click.option(
    "--folder-name",
    default=DEFAULT_CONTRACT_FOLDER,
    show_default=True,
    help="Folder the contract-tested requests are moved into",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    help="Output file (defaults to ./tmp/converted/<collectionName>.json)",
)
@click.pass_context
def regroup(
    ctx: Any,
    collection_file: str,
    contract_tests_config: str,
    folder_name: str,
    output: Optional[str],
) -> None:
    """Move contract-tested requests into their own folder.

    COLLECTION_FILE: Postman v2.1 collection (JSON)
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        collection = load_collection(collection_file)
        collection = _bundle(collection, contract_tests_config, folder_name, out)
        written = write_collection(
            collection,
            output or default_output_path(collection.name),
            load_replacements(contract_tests_config),
        )
    except PortmanError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json({"name": collection.name, "output": str(written)})
    else:
        out.success(f"Collection written to: {written}")


@main.command()
@click.argument("collection_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--bundle-contract-tests",
    "-b",
    is_flag=True,
    help="Move contract-tested requests into their own folder before uploading",
)
@click.option(
    "--contract-tests-config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Portman settings file (contractTests, globals.portmanReplacements)",
)
@click.option(
    "--folder-name",
    default=DEFAULT_CONTRACT_FOLDER,
    show_default=True,
    help="Folder the contract-tested requests are moved into",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    help="Also write the uploaded collection to this .json file",
)
@click.option(
    "--postman-uid",
    help="Update this collection uid instead of looking it up by name "
    "(env: POSTMAN_COLLECTION_UID)",
)
@click.option(
    "--postman-workspace-name",
    help="Workspace to publish into (env: POSTMAN_WORKSPACE_NAME)",
)
@click.option(
    "--cache-file",
    type=click.Path(dir_okay=False),
    help="Sync cache location (env: PORTMAN_CACHE_FILE)",
)
@click.pass_context
def upload(  # noqa: C901
    ctx: Any,
    collection_file: str,
    bundle_contract_tests: bool,
    contract_tests_config: Optional[str],
    folder_name: str,
    output: Optional[str],
    postman_uid: Optional[str],
    postman_workspace_name: Optional[str],
    cache_file: Optional[str],
) -> None:
    """Publish a collection to Postman.

    COLLECTION_FILE: Postman v2.1 collection (JSON)

    The collection is matched to a remote collection by name (or by
    --postman-uid) and updated, or created when no match exists. Remote
    identifiers are cached so later uploads skip the lookups.

    Examples:
        pyportman upload crm.json
        pyportman upload crm.json -b -c portman-config.json
        pyportman upload crm.json --postman-workspace-name "Team APIs"
    """
    out: OutputFormatter = ctx.obj["out"]
    _require_api_key(ctx, out)

    postman_uid = postman_uid or config.get_collection_uid()
    workspace_name = postman_workspace_name or config.get_workspace_name()
    cache_path = Path(cache_file) if cache_file else config.get_cache_file()

    out.rule("red")
    out.key_value(" Local Path", collection_file)
    if output:
        out.key_value(" Output Path", output)
    if contract_tests_config:
        out.key_value(" Portman Config", contract_tests_config)
    out.key_value(" Bundle Tests", bundle_contract_tests)
    if workspace_name:
        out.key_value(" Postman Workspace", workspace_name)
    if postman_uid:
        out.key_value(" Postman UID", postman_uid)
    out.key_value(" Upload to Postman", True)
    out.rule("red")

    try:
        collection = load_collection(collection_file)
        if bundle_contract_tests:
            collection = _bundle(collection, contract_tests_config, folder_name, out)
        if contract_tests_config:
            collection = replace_in_collection(
                collection, load_replacements(contract_tests_config)
            )
        if output:
            write_collection(collection, output)
    except PortmanError as e:
        out.error(str(e))
        ctx.exit(1)

    if not collection.name:
        out.error(f"Collection in {collection_file} has no name")
        ctx.exit(1)

    client = PostmanClient(api_key=ctx.obj.get("api_key"))
    syncer = CollectionSync(
        client,
        SyncCache(cache_path),
        out,
        collection_uid=postman_uid,
        workspace_name=workspace_name,
    )
    try:
        remote = syncer.sync(collection)
    except SyncError as e:
        out.key_value("   -> Reason", e.reason, style="red")
        if e.solution:
            out.key_value("   -> Solution", e.solution, style="red")
        out.key_value("   -> Postman Name", e.collection_name, style="red")
        out.key_value("   -> Postman UID", e.collection_uid or "-", style="red")
        if e.error:
            out.error(str(e.error))
        if out.json_output:
            out.output_json(
                {
                    "status": "fail",
                    "name": e.collection_name,
                    "uid": e.collection_uid,
                    "reason": e.reason,
                    "solution": e.solution,
                    "error": e.error,
                }
            )
        out.rule("red")
        ctx.exit(1)
    except PortmanError as e:
        out.error(str(e))
        ctx.exit(1)
    finally:
        client.close()

    if out.json_output:
        out.output_json({"status": "success", "name": remote.name, "uid": remote.uid})
    else:
        out.rule("green")


@main.group()
def cache() -> None:
    """Inspect or reset the sync cache."""


@cache.command("show")
@click.option("--cache-file", type=click.Path(dir_okay=False), help="Cache location")
@click.pass_context
def cache_show(ctx: Any, cache_file: Optional[str]) -> None:
    """Show cached workspace and collection identifiers."""
    out: OutputFormatter = ctx.obj["out"]
    sync_cache = SyncCache(cache_file or config.get_cache_file()).load()

    if out.json_output:
        out.output_json(sync_cache.to_dict())
        return
    if not len(sync_cache):
        out.info(f"Sync cache is empty ({sync_cache.path})")
        return

    rows = [
        {
            "key": key,
            "identifier": format_workspace_display(record)
            if isinstance(record, WorkspaceRecord)
            else record.uid,
        }
        for key, record in sync_cache.items()
    ]
    out.output_table(rows, ["key", "identifier"], title=str(sync_cache.path))


@cache.command("clear")
@click.option("--cache-file", type=click.Path(dir_okay=False), help="Cache location")
@click.pass_context
def cache_clear(ctx: Any, cache_file: Optional[str]) -> None:
    """Delete the sync cache file."""
    out: OutputFormatter = ctx.obj["out"]
    sync_cache = SyncCache(cache_file or config.get_cache_file())

    try:
        deleted = sync_cache.clear()
    except OSError as e:
        out.error(f"Could not delete sync cache {sync_cache.path}: {e}")
        ctx.exit(1)

    if deleted:
        out.success(f"Deleted sync cache {sync_cache.path}")
    else:
        out.info(f"No sync cache at {sync_cache.path}")


if __name__ == "__main__":
    main()
