"""
Admin CLI for inspecting and repairing workspace data.

Runs with the service-role key (bypasses RLS). Every command is a single
sequential pass; nothing here is safe to run concurrently with itself.

Example:
    synapse-admin repair-memberships --dry-run
    synapse-admin audit-bindings --strict
    synapse-admin n8n status "Ingestão Master" "Marcela AI"
"""

import json
import logging
import sys
from functools import update_wrapper

import click

from synapse.config import settings
from synapse.core.errors import ExternalAPIError, FunctionError
from synapse.core.logging_config import configure_logging
from synapse.database.supabase_client import get_service_supabase
from synapse.integrations.n8n import N8nClient
from synapse.modules.automations.service import AutomationService
from synapse.modules.billing.service import BillingService
from synapse.modules.connections.service import ConnectionService
from synapse.modules.leads.service import LeadService
from synapse.modules.memberships.models import WORKSPACE_ROLES, PROFILE_IDENTITY_KEYS
from synapse.modules.memberships.service import MembershipService
from synapse.modules.workspaces.service import WorkspaceService

logger = logging.getLogger(__name__)


def _dump(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def _fail(message: str) -> None:
    raise click.ClickException(message)


def _supabase():
    try:
        return get_service_supabase()
    except RuntimeError as e:
        _fail(str(e))


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level):
    """Synapse admin tools."""
    configure_logging(log_level)


# Memberships


@cli.command("repair-memberships")
@click.option("--dry-run", is_flag=True, help="Report missing rows without inserting")
@click.option("--role", default="owner", type=click.Choice(WORKSPACE_ROLES), show_default=True)
@click.option(
    "--identity-key",
    default=None,
    type=click.Choice(PROFILE_IDENTITY_KEYS),
    help="Profile column holding the auth user id (default: MEMBERSHIP_IDENTITY_KEY)",
)
def repair_memberships(dry_run, role, identity_key):
    """Add missing workspace_members rows for profiles' current workspace."""
    service = MembershipService(_supabase(), identity_key or settings.membership_identity_key)
    try:
        report = service.reconcile(dry_run=dry_run, default_role=role)
    except Exception as e:
        _fail(f"Could not load profiles: {e}")

    verb = "Would add" if dry_run else "Added"
    click.echo(f"Profiles checked: {report.profiles_checked}")
    for pair in report.inserted:
        click.echo(f"  [+] {verb} {pair.email or pair.user_id} to workspace {pair.workspace_id}")
    click.echo(f"Already members: {len(report.already_present)}")
    for pair in report.duplicates:
        click.echo(f"  [!] Duplicate rows for {pair.user_id} in workspace {pair.workspace_id}")
    for skipped in report.skipped:
        click.echo(f"  [?] Skipped profile {skipped.profile_id}: {skipped.reason}")
    for failure in report.failed:
        click.echo(f"  [x] {failure.user_id} -> {failure.workspace_id}: {failure.error}")

    if not report.ok:
        sys.exit(1)


@cli.command("members")
@click.argument("workspace_id")
def members(workspace_id):
    """List the members of a workspace."""
    service = MembershipService(_supabase(), settings.membership_identity_key)
    for member in service.list_workspace_members(workspace_id):
        click.echo(f"- {member.user_id} ({member.role})")


@cli.command("user-state")
@click.argument("email")
def user_state(email):
    """Show a user's profile, memberships and current-workspace connections."""
    service = MembershipService(_supabase(), settings.membership_identity_key)
    try:
        state = service.get_user_state(email)
    except LookupError as e:
        _fail(str(e))
    _dump(state.model_dump())
    if state.current_workspace_id and not state.is_member_of_current:
        click.echo("WARNING: user is not a member of their current workspace")


# Connections


@cli.command("audit-bindings")
@click.option("--strict", is_flag=True, help="Exit 1 when any binding is broken")
def audit_bindings(strict):
    """Compare Evolution instances with workspaces.instance_name."""
    service = ConnectionService(_supabase())
    try:
        report = service.audit_bindings()
    except ExternalAPIError as e:
        _fail(f"Failed to fetch Evolution instances: {e}")
    except RuntimeError as e:
        _fail(str(e))

    click.echo("\nCORRECT BINDINGS:")
    if not report.bound:
        click.echo("   (none)")
    for b in report.bound:
        click.echo(f"   [OK] {b.instance} -> Workspace: {b.workspace_name} ({b.workspace_id})")

    click.echo("\nORPHANED INSTANCES (at the gateway, no workspace):")
    if not report.orphaned:
        click.echo("   (none)")
    for instance in report.orphaned:
        click.echo(f"   [!] {instance}")

    click.echo("\nDISCONNECTED WORKSPACES:")
    if not report.disconnected:
        click.echo("   (none)")
    for ws in report.disconnected:
        click.echo(f"   [x] {ws.workspace_name} ({ws.workspace_id}) -> {ws.reason}")

    for shared in report.shared:
        click.echo(f"\n[!] Instance {shared.instance} is claimed by {', '.join(shared.workspace_ids)}")

    if strict and not report.consistent:
        sys.exit(1)


@cli.command("sync-webhooks")
@click.option("--url", default=None, help="Webhook URL (default: EVOLUTION_WEBHOOK_URL)")
def sync_webhooks(url):
    """Point every Evolution instance webhook at the ingest URL."""
    service = ConnectionService(_supabase())
    try:
        response = service.sync_webhooks(url)
    except (FunctionError, RuntimeError) as e:
        _fail(str(e))
    for result in response.results:
        status = "OK" if result.success else "FAILED"
        click.echo(f"[{status}] {result.instance} {result.status or result.error or ''}")
    if not all(r.success for r in response.results):
        sys.exit(1)


@cli.command("webhook-status")
def webhook_status():
    """Show the gateway-side webhook config of each Evolution connection."""
    service = ConnectionService(_supabase())
    _dump([s.model_dump() for s in service.webhook_status()])


# Workspaces, billing, leads


@cli.command("audit")
def audit():
    """Dump workspaces, profiles, memberships and connections."""
    _dump(WorkspaceService(_supabase()).snapshot())


@cli.command("activate-plan")
@click.argument("email")
@click.option("--plan", "plan_slug", default="premium", show_default=True)
@click.option("--days", default=365, show_default=True, type=int)
def activate_plan(email, plan_slug, days):
    """Grant a subscription plan to a user's workspace without Stripe."""
    try:
        activation = BillingService(_supabase()).activate_plan(email, plan_slug, days)
    except LookupError as e:
        _fail(str(e))
    click.echo(f"Plan {activation.plan_slug} active for workspace {activation.workspace_id} "
               f"until {activation.current_period_end:%Y-%m-%d}")


@cli.command("qualify-lead")
@click.argument("name")
@click.option("--score", required=True, type=click.IntRange(0, 100))
@click.option("--objection", "objections", multiple=True)
@click.option("--workspace", "workspace_id", default=None)
def qualify_lead(name, score, objections, workspace_id):
    """Set a lead's score and temperature by hand."""
    try:
        lead = LeadService(_supabase()).qualify_lead(name, score, list(objections), workspace_id)
    except LookupError as e:
        _fail(str(e))
    click.echo(f"Lead updated: score {lead.get('score')}, {lead.get('temperature')}")


@cli.command("init-ai-status")
@click.argument("workspace_id")
def init_ai_status(workspace_id):
    """Create the default AI training status row for a workspace."""
    row = WorkspaceService(_supabase()).init_ai_training_status(workspace_id)
    click.echo(f"AI training status: {row['id']} ({row.get('status')})")


@cli.command("delete-user")
@click.argument("email")
@click.option("--yes", is_flag=True, help="Skip confirmation prompt")
def delete_user(email, yes):
    """Delete an auth user by email."""
    if not yes:
        click.confirm(f"Delete auth user {email}?", abort=True)
    try:
        user_id = WorkspaceService(_supabase()).delete_auth_user(email)
    except LookupError as e:
        _fail(str(e))
    click.echo(f"Deleted {user_id}")


# n8n


@cli.group()
def n8n():
    """n8n workflow management."""


def pass_automation(f):
    """Build the n8n-backed service when the subcommand runs, after argument parsing"""
    @click.pass_context
    def new_func(ctx, *args, **kwargs):
        try:
            client = N8nClient.from_settings()
        except RuntimeError as e:
            _fail(str(e))
        ctx.call_on_close(client.close)
        return ctx.invoke(f, AutomationService(client), *args, **kwargs)
    return update_wrapper(new_func, f)


@n8n.command("list")
@pass_automation
def n8n_list(service):
    workflows = service.client.list_workflows()
    click.echo(f"Workflows found: {len(workflows)}")
    for w in workflows:
        click.echo(f"- [{w['id']}] {w['name']} (Active: {w.get('active')})")


@n8n.command("deploy")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@pass_automation
def n8n_deploy(service, paths):
    """Create workflows from exported JSON files."""
    failed = False
    for path in paths:
        try:
            result = service.deploy_from_file(path)
            click.echo(f"Deployed {result.get('id')} ({result.get('name')})")
        except (ExternalAPIError, ValueError) as e:
            click.echo(f"Error deploying {path}: {e}", err=True)
            failed = True
    if failed:
        sys.exit(1)


@n8n.command("update")
@click.argument("workflow_id")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@pass_automation
def n8n_update(service, workflow_id, path):
    """Replace a workflow's nodes and connections from an exported JSON file."""
    try:
        result = service.update_from_file(workflow_id, path)
    except ExternalAPIError as e:
        _fail(f"Failed to update workflow: {e} {e.body or ''}")
    click.echo(f"Updated {result.get('id')} (Active: {result.get('active')})")


@n8n.command("toggle")
@click.option("--activate", "to_activate", multiple=True, help="Workflow id to activate")
@click.option("--deactivate", "to_deactivate", multiple=True, help="Workflow id to deactivate")
@pass_automation
def n8n_toggle(service, to_activate, to_deactivate):
    """Deactivate, then activate, the given workflows."""
    results = service.toggle(activate=to_activate, deactivate=to_deactivate)
    errors = {k: v for k, v in results.items() if v}
    for workflow_id, error in errors.items():
        click.echo(f"[ERROR] {workflow_id}: {error}", err=True)
    if errors:
        sys.exit(1)


@n8n.command("status")
@click.argument("fragments", nargs=-1, required=True)
@pass_automation
def n8n_status(service, fragments):
    """Report whether workflows matching each name fragment exist and are active."""
    for fragment, workflow in service.status_report(fragments).items():
        if workflow:
            click.echo(f"[{fragment}] FOUND | ID: {workflow['id']} | Active: {workflow.get('active')}")
        else:
            click.echo(f"[{fragment}] NOT FOUND")


@n8n.command("executions")
@click.option("--workflow", "workflow_id", default=None)
@click.option("--limit", default=5, show_default=True, type=int)
@click.option("--status", default=None, type=click.Choice(["error", "success", "waiting"]))
@pass_automation
def n8n_executions(service, workflow_id, limit, status):
    _dump(service.client.list_executions(workflow_id, limit=limit, status=status))


@n8n.command("errors")
@click.argument("execution_id")
@pass_automation
def n8n_errors(service, execution_id):
    """Show the failed nodes of an execution."""
    failures = service.execution_errors(execution_id)
    if not failures:
        click.echo("No failed nodes")
    for failure in failures:
        click.echo(f"Node Failed: {failure['node']}")
        click.echo(f"Error Message: {failure['message']}")


@n8n.command("credentials")
@pass_automation
def n8n_credentials(service):
    for c in service.client.list_credentials():
        click.echo(f"- [{c['id']}] {c['name']} ({c['type']})")


if __name__ == "__main__":
    cli()
