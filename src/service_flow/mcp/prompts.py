"""MCP prompt templates for common workflows."""

from service_flow.mcp.server import mcp


@mcp.prompt()
def close_out_work_order(work_order_id: str) -> str:
    """Generate a prompt to finish and bill a work order."""
    return (
        f"I want to close out work order '{work_order_id}'.\n\n"
        f"Please:\n"
        f"1. Use work_order_extract to review its checklists, quote and payments\n"
        f"2. Use complete_work_order to mark it DONE (do not skip checklist validation "
        f"unless I confirm it)\n"
        f"3. If the payment suggestion allows it, use generate_payment with the suggested value\n"
        f"4. Summarize the final balance"
    )


@mcp.prompt()
def client_history(client_id: str) -> str:
    """Generate a prompt for a client activity report."""
    return (
        f"Please summarize the history of client '{client_id}'.\n\n"
        f"Use client_timeline to get every event, then provide:\n"
        f"1. Quotes sent and their outcome\n"
        f"2. Work orders and their current state\n"
        f"3. Payments issued, received and still pending\n"
        f"4. Anything that looks stuck (approved quotes with no work order, "
        f"finished work with no payment)"
    )
