"""Command-line interface for modsync."""

from __future__ import annotations

import asyncio as asyncio
import logging as logging

from modsync import AuthenticationError as AuthenticationError
from modsync import ConfigError as ConfigError
from modsync import ModSync as ModSync
from modsync import create_token_resolver as create_token_resolver
from modsync import load_config as load_config
from modsync import scaffold_config as scaffold_config
from modsync import write_config as write_config
from modsync.cli.app import main as main
from modsync.cli.commands import init as init_command
from modsync.cli.commands import login as login_command
from modsync.cli.commands import logout as logout_command
from modsync.cli.commands import status as status_command
from modsync.cli.commands import subscribe as subscribe_command
from modsync.cli.commands import sync as sync_command
from modsync.cli.commands import watch as watch_command
from modsync.cli.observer import ConsoleObserver as ConsoleObserver
from modsync.cli.parser import build_parser as build_parser
from modsync.persistence import load_state as load_state

_format_sync_summary = sync_command.format_sync_summary

_run_init = init_command.run_init
_run_sync = sync_command.run_sync
_run_watch = watch_command.run_watch
_run_action = subscribe_command.run_action
_run_status = status_command.run_status
_run_login = login_command.run_login
_run_logout = logout_command.run_logout
