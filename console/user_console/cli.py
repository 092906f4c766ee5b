"""
User Console 命令行入口模块。

提供 CLI 命令：list / get / create / update / delete（调用用户服务 API）和 check（验证配置文件）。
"""
import asyncio
import logging
import sys
from typing import Optional

import click

from user_console import __version__, query_codec
from user_console.api_client import UserApiClient
from user_console.config import ConsoleConfig, load_config
from user_console.formatting import format_display_date, parse_date, truncate_text
from user_console.list_controller import ListStatus
from user_console.mutation_controller import MutationController, MutationResult
from user_console.pages import UserListPage
from user_console.query_store import InMemoryQueryStore
from user_console.schemas import ALLOWED_LIMITS, SORT_COLUMNS, FilterSet, PaginationSpec, UserForm, UserRecord

logger = logging.getLogger("user-console")


@click.group(invoke_without_command=True)
@click.option("--config", "-c", default=None, envvar="USER_CONSOLE_CONFIG", help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config, verbose):
    """User Console - 用户管理控制台。"""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # 未指定子命令时，显示基本信息
    if ctx.invoked_subcommand is None:
        click.echo(f"User Console v{__version__}")
        click.echo(f"Config: {config or '(defaults)'}")
        click.echo("Use --help for available commands")


def _load(ctx) -> ConsoleConfig:
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = load_config(ctx.obj.get("config_path"))
        except (FileNotFoundError, ValueError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    return ctx.obj["config"]


def _client(ctx) -> UserApiClient:
    # 测试时通过 ctx.obj["transport"] 注入 httpx transport
    return UserApiClient.from_config(_load(ctx), transport=ctx.obj.get("transport"))


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _echo_user(user: UserRecord) -> None:
    click.echo(f"ID:        {user.id}")
    click.echo(f"Name:      {user.name}")
    click.echo(f"Email:     {user.email}")
    click.echo(f"Mobile:    {user.mobile_number}")
    click.echo(f"Country:   {user.country}")
    click.echo(f"Birthday:  {format_display_date(user.birthday)}")
    click.echo(f"About:     {user.about_you}")
    click.echo(f"Created:   {format_display_date(user.created_at)}")
    click.echo(f"Updated:   {format_display_date(user.updated_at)}")


def _report(result: MutationResult, action: str) -> None:
    if result.ok:
        return
    for name, message in sorted(result.field_errors.items()):
        click.echo(f"  {name}: {message}", err=True)
    _fail(f"Failed to {action} user")


@cli.command("list")
@click.option("--search", default="", help="Search across name, email and country")
@click.option("--name", default="")
@click.option("--email", default="")
@click.option("--country", default="")
@click.option("--from", "from_date", default=None, help="Created from (YYYY-MM-DD)")
@click.option("--to", "to_date", default=None, help="Created to (YYYY-MM-DD)")
@click.option("--page", default=1, type=click.IntRange(min=1))
@click.option("--limit", default=None, type=click.Choice([str(v) for v in ALLOWED_LIMITS]))
@click.option("--sort-by", default="createdAt", type=click.Choice(SORT_COLUMNS))
@click.option("--sort-order", default="DESC", type=click.Choice(["ASC", "DESC"], case_sensitive=False))
@click.option("--query", "-q", default=None, help="Use a URL query string instead of the options above")
@click.pass_context
def list_users(ctx, search, name, email, country, from_date, to_date, page, limit, sort_by, sort_order, query):
    """列出用户（支持筛选、排序、分页）。"""
    cfg = _load(ctx)
    if query is None:
        for label, value in (("--from", from_date), ("--to", to_date)):
            if value and parse_date(value) is None:
                _fail(f"Invalid date for {label}: {value} (expected YYYY-MM-DD)")
        filters = FilterSet(
            search=search, name=name, email=email, country=country,
            from_date=parse_date(from_date), to_date=parse_date(to_date),
        )
        pagination = PaginationSpec(
            page=page,
            limit=int(limit) if limit else cfg.ui.default_limit,
            sort_by=sort_by,
            sort_order=sort_order.upper(),
        )
        query = query_codec.encode(filters, pagination)
    logger.debug(f"Listing users with query ?{query}")

    async def _run() -> UserListPage:
        async with _client(ctx) as api:
            page_view = UserListPage(api, InMemoryQueryStore(query))
            await page_view.load()
            return page_view

    view = asyncio.run(_run())
    if view.list.status == ListStatus.FAILED:
        _fail(view.list.error.message)

    for u in view.list.records:
        click.echo(
            f"{u.id:>6}  {truncate_text(u.name, 24):<27} {truncate_text(u.email, 30):<33} "
            f"{u.country:<20} {format_display_date(u.birthday)}"
        )
    info = view.list.page
    if info.total_items == 0:
        click.echo("No users found")
    else:
        click.echo(f"Showing {info.start_item} to {info.end_item} of {info.total_items} results")
        click.echo(f"Page {info.current_page} of {info.total_pages}")
    if view.filters.has_active_filters:
        click.echo(f"Active filters: {view.filters.active_filter_count}")
    click.echo(f"Query: ?{query_codec.encode_state(view.list.query_state)}")


@cli.command("get")
@click.argument("user_id")
@click.pass_context
def get_user(ctx, user_id):
    """查看用户详情。"""
    async def _run():
        async with _client(ctx) as api:
            return await api.get_user(user_id)

    result = asyncio.run(_run())
    if not result.ok:
        _fail(result.error.message)
    _echo_user(result.value)


def _form_options(required: bool):
    def decorator(f):
        for opt, help_text in reversed((
            ("--name", "Full name"),
            ("--email", "Email address"),
            ("--mobile", "Mobile number"),
            ("--country", "Country"),
            ("--birthday", "Date of birth (YYYY-MM-DD)"),
            ("--about", "About you (10-250 characters)"),
        )):
            f = click.option(opt, required=required, default=None, help=help_text)(f)
        return f
    return decorator


def _apply_options(form: UserForm, **values) -> UserForm:
    mapping = {
        "name": "name", "email": "email", "mobile": "mobile_number",
        "country": "country", "birthday": "birthday", "about": "about_you",
    }
    updates = {}
    for opt, field_name in mapping.items():
        value = values.get(opt)
        if value is None:
            continue
        updates[field_name] = parse_date(value) if field_name == "birthday" else value
    return form.model_copy(update=updates)


@cli.command("create")
@_form_options(required=True)
@click.pass_context
def create_user(ctx, **values):
    """创建用户。"""
    form = _apply_options(UserForm(), **values)

    async def _run():
        async with _client(ctx) as api:
            return await MutationController(api).create(form)

    result = asyncio.run(_run())
    _report(result, "create")
    click.echo(f"User created successfully: {result.value.name} (id={result.value.id})")


@cli.command("update")
@click.argument("user_id")
@_form_options(required=False)
@click.pass_context
def update_user(ctx, user_id, **values):
    """更新用户，未指定的字段保持不变。"""
    async def _run():
        async with _client(ctx) as api:
            current = await api.get_user(user_id)
            if not current.ok:
                return current.error, None
            form = _apply_options(UserForm.from_record(current.value), **values)
            return None, await MutationController(api).update(current.value.id, form)

    error, result = asyncio.run(_run())
    if error is not None:
        _fail(error.message)
    _report(result, "update")
    click.echo(f"User updated successfully: {result.value.name} (id={result.value.id})")


@cli.command("delete")
@click.argument("user_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_user(ctx, user_id, yes):
    """删除用户。"""
    if not yes:
        click.confirm(f"Delete user {user_id}? This action cannot be undone", abort=True)

    async def _run():
        async with _client(ctx) as api:
            return await MutationController(api).remove(user_id)

    result = asyncio.run(_run())
    _report(result, "delete")
    click.echo(f"User {user_id} deleted successfully")


@cli.command()
@click.pass_context
def check(ctx):
    """验证配置文件是否正确。"""
    config_path = ctx.obj["config_path"]
    try:
        cfg = load_config(config_path)
        click.echo(f"✅ Config OK: {config_path or '(defaults)'}")
        click.echo(f"   API: {cfg.api.base_url}")
        click.echo(f"   Timeout: {cfg.api.timeout:g}s")
        click.echo(f"   Default page size: {cfg.ui.default_limit}")
    except Exception as e:
        click.echo(f"❌ Config error: {e}", err=True)
        sys.exit(1)


def main(argv: Optional[list] = None):
    """CLI 入口函数。"""
    cli(argv)


if __name__ == "__main__":
    main()
