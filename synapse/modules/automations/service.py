import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from synapse.integrations.n8n import N8nClient, N8nAPIError

logger = logging.getLogger(__name__)

# Fields the public API accepts on create/update; exports carry more (id, tags, meta...)
WORKFLOW_FIELDS = ("name", "nodes", "connections", "settings")


def load_workflow_file(path) -> dict:
    with open(Path(path), "r", encoding="utf-8") as f:
        workflow = json.load(f)
    payload = {k: workflow[k] for k in WORKFLOW_FIELDS if k in workflow}
    payload.setdefault("settings", {})
    missing = [k for k in ("name", "nodes", "connections") if k not in payload]
    if missing:
        raise ValueError(f"{path} is not a workflow export (missing {', '.join(missing)})")
    return payload


def failed_nodes(execution: dict) -> List[dict]:
    """Nodes whose first run in an execution recorded an error"""
    run_data = (((execution.get("data") or {}).get("resultData") or {}).get("runData")) or {}
    failures = []
    for node_name, runs in run_data.items():
        if not runs:
            continue
        error = runs[0].get("error")
        if error:
            failures.append({
                "node": node_name,
                "message": error.get("message"),
                "error": error,
            })
    return failures


class AutomationService:
    def __init__(self, client: N8nClient):
        self.client = client

    def deploy_from_file(self, path) -> dict:
        """Create a new workflow from an exported JSON file"""
        payload = load_workflow_file(path)
        logger.info(f"Deploying workflow: {payload['name']}")
        result = self.client.create_workflow(payload)
        logger.info(f"Workflow deployed: {result.get('id')} ({result.get('name')})")
        return result

    def update_from_file(self, workflow_id: str, path) -> dict:
        """Replace an existing workflow's definition with an exported JSON file"""
        payload = load_workflow_file(path)
        logger.info(f"Updating workflow: {payload['name']} ({workflow_id})")
        return self.client.update_workflow(workflow_id, payload)

    def toggle(self, activate: Iterable[str] = (), deactivate: Iterable[str] = ()) -> Dict[str, Optional[str]]:
        """Deactivate then activate workflows; returns id -> error message (None on success)"""
        results = {}
        for workflow_id, active in [(w, False) for w in deactivate] + [(w, True) for w in activate]:
            try:
                self.client.set_active(workflow_id, active)
                logger.info(f"Workflow {workflow_id} {'ACTIVATED' if active else 'DEACTIVATED'}")
                results[workflow_id] = None
            except N8nAPIError as e:
                logger.error(f"Failed to toggle {workflow_id}: {e} {e.body or ''}")
                results[workflow_id] = str(e)
        return results

    def status_report(self, name_fragments: Iterable[str]) -> Dict[str, Optional[dict]]:
        """For each fragment, the first workflow whose name contains it (or None)"""
        workflows = self.client.list_workflows()
        report = {}
        for fragment in name_fragments:
            match = next((w for w in workflows if fragment in (w.get("name") or "")), None)
            report[fragment] = match
        return report

    def execution_errors(self, execution_id: str) -> List[dict]:
        return failed_nodes(self.client.get_execution(execution_id, include_data=True))
