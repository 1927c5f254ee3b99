from typing import Dict, Any

# Finished reconciliation runs, per tenant.
# Structure: { tenant_id: { "report": ReconciliationReport, "suppliers": [...], "timestamp": "" } }
# Only the last run per tenant is kept. Source payloads are never stored here.
APP_STATE: Dict[str, Any] = {}
