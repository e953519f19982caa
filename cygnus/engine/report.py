"""Column layout for task and deploy reports."""

from __future__ import annotations

from ..config import ReportOptions
from .models import DeployRecord, TaskRecord, env_values

UNKNOWN = "UNKNOWN"


def shows_state(options: ReportOptions) -> bool:
    return options.print_active and options.print_pending


def header_names(options: ReportOptions, deploys: bool = False) -> list[str]:
    names = ["Request ID", "Deploy ID"]
    if shows_state(options):
        names.append("State")
    names.extend(options.env)
    if not deploys:
        if options.include_status:
            names.append("Status")
        if options.include_docker_image:
            names.append("Docker Image")
    return names


def task_row(record: TaskRecord, options: ReportOptions) -> list[str]:
    ident = record.identifier
    row = [ident.request_id, ident.deploy_id]
    if shows_state(options):
        row.append(record.request.state if record.request is not None else UNKNOWN)
    row.extend(env_values(record.environment, options.env))
    if options.include_status:
        row.append(record.status.value if record.status is not None else UNKNOWN)
    if options.include_docker_image:
        row.append(record.image or "")
    return row


def deploy_row(record: DeployRecord, options: ReportOptions) -> list[str]:
    row = [record.request_id, record.deploy_id]
    if shows_state(options):
        row.append(record.marker)
    row.extend(env_values(record.env, options.env))
    return row


__all__ = ["deploy_row", "header_names", "shows_state", "task_row"]
