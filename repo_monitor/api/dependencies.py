"""
Request dependencies resolving the services owned by the running application.
"""

from fastapi import Request

from ..config import ConfigStore, MonitorConfig
from ..services.aggregation_service import ApprovalTracker
from ..services.command_service import CommandHistory, CommandService
from ..services.poller import RepoPoller


def get_poller(request: Request) -> RepoPoller:
    return request.app.state.poller


def get_monitor_config(request: Request) -> MonitorConfig:
    return request.app.state.poller.config


def get_approval_tracker(request: Request) -> ApprovalTracker:
    return request.app.state.approval_tracker


def get_config_store(request: Request) -> ConfigStore:
    return request.app.state.config_store


def get_command_service(request: Request) -> CommandService:
    return request.app.state.command_service


def get_command_history(request: Request) -> CommandHistory:
    return request.app.state.command_history
