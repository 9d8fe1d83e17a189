"""Prompt Studio CLI — studio command."""

from __future__ import annotations

import json
import sys
from typing import Any

import click

from prompt_studio.cli.client import StudioClient
from prompt_studio.cli.render import render_split, render_unified
from prompt_studio.core.lifecycle import STATUS_LABELS
from prompt_studio.db.models import VersionStatus

STATUS_CHOICES = [s.value for s in VersionStatus]


def _format_table(rows: list[dict], columns: list[str]) -> str:
    """Simple table formatter."""
    if not rows:
        return "No results."
    widths = {c: len(c) for c in columns}
    for row in rows:
        for c in columns:
            val = str(row.get(c, ""))
            widths[c] = max(widths[c], len(val))

    header = "  ".join(c.upper().ljust(widths[c]) for c in columns)
    separator = "  ".join("-" * widths[c] for c in columns)
    lines = [header, separator]
    for row in rows:
        line = "  ".join(str(row.get(c, "")).ljust(widths[c]) for c in columns)
        lines.append(line)
    return "\n".join(lines)


def _label(status: str) -> str:
    try:
        return STATUS_LABELS[VersionStatus(status)]
    except ValueError:
        return status


@click.group()
@click.option("--api", default="http://localhost:8400", envvar="STUDIO_API", help="API base URL")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table")
@click.option("--token", default=None, envvar="STUDIO_TOKEN", help="Auth token")
@click.pass_context
def cli(ctx: click.Context, api: str, output_format: str, token: str | None) -> None:
    """Manage prompt templates and their versions."""
    ctx.obj = StudioClient(base_url=api, auth_token=token)
    ctx.meta["output_format"] = output_format


def _output(ctx: click.Context, data: Any, columns: list[str] | None = None) -> None:
    fmt = ctx.meta.get("output_format", "table")
    if fmt == "json":
        click.echo(json.dumps(data, indent=2, default=str))
    elif isinstance(data, list) and columns:
        click.echo(_format_table(data, columns))
    else:
        click.echo(json.dumps(data, indent=2, default=str))


def _output_page(ctx: click.Context, page: dict, columns: list[str]) -> None:
    if ctx.meta.get("output_format") == "json":
        _output(ctx, page)
        return
    _output(ctx, page["content"], columns)
    click.echo(
        f"\nPage {page['number'] + 1} of {max(page['total_pages'], 1)}"
        f" ({page['total_elements']} total)"
    )


def _call(fn, *args: Any, **kwargs: Any) -> Any:
    """Run a client call, turning API errors into a clean CLI failure."""
    try:
        return fn(*args, **kwargs)
    except RuntimeError as e:
        raise click.ClickException(str(e))


# --- Template commands ---


@cli.group()
def template() -> None:
    """Manage prompt templates."""


@template.command("list")
@click.option("--page", default=0, type=int)
@click.option("--size", default=10, type=int)
@click.option("--search", "search_text", default=None, help="Filter by name or description")
@click.option("--category", default=None)
@click.option("--project", "project_id", default=None)
@click.pass_context
def template_list(
    ctx: click.Context,
    page: int,
    size: int,
    search_text: str | None,
    category: str | None,
    project_id: str | None,
) -> None:
    """List templates."""
    client: StudioClient = ctx.obj
    criteria = {
        k: v
        for k, v in {"search_text": search_text, "category": category, "project_id": project_id}.items()
        if v
    }
    if criteria:
        data = _call(client.search_templates, criteria, page, size)
    else:
        data = _call(client.list_templates, page, size)
    _output_page(ctx, data, ["id", "name", "category", "version_count", "has_published_version"])


@template.command("show")
@click.argument("template_id")
@click.pass_context
def template_show(ctx: click.Context, template_id: str) -> None:
    """Show template details."""
    client: StudioClient = ctx.obj
    _output(ctx, _call(client.get_template, template_id))


@template.command("create")
@click.option("--name", required=True)
@click.option("--project", "project_id", required=True)
@click.option("--description", default="")
@click.option("--category", default="")
@click.option("--author", default="cli")
@click.pass_context
def template_create(
    ctx: click.Context,
    name: str,
    project_id: str,
    description: str,
    category: str,
    author: str,
) -> None:
    """Create a template."""
    client: StudioClient = ctx.obj
    result = _call(client.create_template, {
        "name": name,
        "project_id": project_id,
        "description": description,
        "category": category,
        "created_by": author,
    })
    _output(ctx, result)


@template.command("delete")
@click.argument("template_id")
@click.confirmation_option(prompt="Delete the template and all of its versions?")
@click.pass_context
def template_delete(ctx: click.Context, template_id: str) -> None:
    """Delete a template and its versions."""
    client: StudioClient = ctx.obj
    _call(client.delete_template, template_id)
    click.echo(f"Deleted template '{template_id}'")


@template.command("categories")
@click.pass_context
def template_categories(ctx: click.Context) -> None:
    """List distinct template categories."""
    client: StudioClient = ctx.obj
    for category in _call(client.list_categories):
        click.echo(category)


# --- Version commands ---


@cli.group()
def version() -> None:
    """Manage versions."""


@version.command("list")
@click.argument("template_id")
@click.option("--page", default=0, type=int)
@click.option("--size", default=10, type=int)
@click.pass_context
def version_list(ctx: click.Context, template_id: str, page: int, size: int) -> None:
    """List a template's versions, highest first."""
    client: StudioClient = ctx.obj
    data = _call(client.template_versions, template_id, page, size)
    for row in data["content"]:
        row["status"] = _label(row["status"])
    _output_page(ctx, data, ["id", "version_number", "status", "created_by", "created_at"])


@version.command("show")
@click.argument("version_id")
@click.pass_context
def version_show(ctx: click.Context, version_id: str) -> None:
    """Show a version."""
    client: StudioClient = ctx.obj
    _output(ctx, _call(client.get_version, version_id))


@version.command("create")
@click.argument("template_id")
@click.option("--number", "version_number", required=True)
@click.option("--file", "-f", "file_path", default=None, help="JSON with content, system_prompt, parameters")
@click.option("--parent", "parent_version_id", default=None)
@click.option("--author", default="cli")
@click.pass_context
def version_create(
    ctx: click.Context,
    template_id: str,
    version_number: str,
    file_path: str | None,
    parent_version_id: str | None,
    author: str,
) -> None:
    """Create a draft version. Reads its body from --file or stdin (JSON)."""
    client: StudioClient = ctx.obj
    if file_path:
        with open(file_path) as f:
            body = json.load(f)
    else:
        body = json.load(sys.stdin)
    data = {
        **body,
        "template_id": template_id,
        "version_number": version_number,
        "parent_version_id": parent_version_id,
        "author": author,
    }
    _output(ctx, _call(client.create_version, data))


@version.command("branch")
@click.argument("version_id")
@click.option("--number", "version_number", required=True)
@click.option("--author", default="cli")
@click.pass_context
def version_branch(ctx: click.Context, version_id: str, version_number: str, author: str) -> None:
    """Branch a new draft from an existing version."""
    client: StudioClient = ctx.obj
    result = _call(
        client.branch_version, version_id, {"version_number": version_number, "author": author}
    )
    _output(ctx, result)


@version.command("status")
@click.argument("version_id")
@click.argument("status", type=click.Choice(STATUS_CHOICES, case_sensitive=False))
@click.option("--comment", "-m", default=None)
@click.option("--author", default="cli")
@click.pass_context
def version_status(
    ctx: click.Context, version_id: str, status: str, comment: str | None, author: str
) -> None:
    """Move a version to a new status."""
    client: StudioClient = ctx.obj
    result = _call(client.update_status, version_id, status.upper(), comment, author)
    if ctx.meta.get("output_format") == "json":
        _output(ctx, result)
    else:
        click.echo(f"Version {result['version_number']} is now {_label(result['status'])}")


@version.command("transitions")
@click.argument("version_id")
@click.pass_context
def version_transitions(ctx: click.Context, version_id: str) -> None:
    """Show the statuses a version may move to."""
    client: StudioClient = ctx.obj
    data = _call(client.status_transitions, version_id)
    if ctx.meta.get("output_format") == "json":
        _output(ctx, data)
        return
    for current, allowed in data.items():
        targets = ", ".join(_label(s) for s in allowed) or "none"
        click.echo(f"{_label(current)} -> {targets}")


@version.command("compare")
@click.argument("source_id")
@click.argument("target_id")
@click.option("--view", type=click.Choice(["unified", "split"]), default="unified")
@click.option("--color/--no-color", default=False)
@click.pass_context
def version_compare(
    ctx: click.Context, source_id: str, target_id: str, view: str, color: bool
) -> None:
    """Line diff between two versions of a template."""
    client: StudioClient = ctx.obj
    data = _call(client.compare, source_id, target_id)
    if ctx.meta.get("output_format") == "json":
        _output(ctx, data)
        return

    render = render_split if view == "split" else render_unified
    click.echo(
        f"{data['source_version_number']} -> {data['target_version_number']}"
        f"  (similarity {data['similarity']:.2f})"
    )
    click.echo(data["summary"])
    for title, key in (
        ("Content", "content_diff"),
        ("System prompt", "system_prompt_diff"),
        ("Parameters", "parameters_diff"),
    ):
        click.echo(f"\n## {title}")
        click.echo(render(data[key], color=color))


@version.command("rollback")
@click.argument("version_id")
@click.option("--comment", "-m", default=None)
@click.option("--author", default="cli")
@click.pass_context
def version_rollback(ctx: click.Context, version_id: str, comment: str | None, author: str) -> None:
    """Restore a version's content as a new draft."""
    client: StudioClient = ctx.obj
    _output(ctx, _call(client.rollback, version_id, comment, author))


@version.command("lineage")
@click.argument("version_id")
@click.pass_context
def version_lineage(ctx: click.Context, version_id: str) -> None:
    """Show a version's ancestors and branches."""
    client: StudioClient = ctx.obj
    data = _call(client.lineage, version_id)
    if ctx.meta.get("output_format") == "json":
        _output(ctx, data)
        return
    for depth, ancestor in enumerate(data["ancestors"]):
        click.echo(f"{'  ' * depth}{ancestor['version_number']} [{_label(ancestor['status'])}]")
    indent = "  " * len(data["ancestors"])
    for child in data["children"]:
        click.echo(f"{indent}+ {child['version_number']} [{_label(child['status'])}]")


@version.command("audit")
@click.argument("version_id")
@click.pass_context
def version_audit(ctx: click.Context, version_id: str) -> None:
    """Show a version's audit trail."""
    client: StudioClient = ctx.obj
    data = _call(client.audit_trail, version_id)
    _output(ctx, data, ["created_at", "action", "performed_by", "details", "comment"])


@version.command("check")
@click.argument("version_id")
@click.option("--set", "assignments", multiple=True, help="name=value pairs")
@click.pass_context
def version_check(ctx: click.Context, version_id: str, assignments: tuple) -> None:
    """Validate parameter values against a version's definitions."""
    client: StudioClient = ctx.obj
    values = {}
    for item in assignments:
        if "=" in item:
            k, val = item.split("=", 1)
            values[k] = val
    result = _call(client.validate_parameters, version_id, values)
    if ctx.meta.get("output_format") == "json":
        _output(ctx, result)
    else:
        click.echo("Valid" if result["valid"] else "Invalid")
        for issue in result["issues"]:
            click.echo(f"  [{issue['severity']}] {issue['parameter']}: {issue['message']}")
    if not result["valid"]:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
