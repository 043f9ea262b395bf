#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import logging
import signal
import threading
import uuid as uuid_module
from signal import SIGINT, SIGTERM

from ssdp_discovery_endpoint.internal_types import *

from ssdp_discovery_endpoint import (
    __version__ as pkg_version,
    SsdpEndpoint,
  )

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    stop_event: threading.Event
    """Set by SIGINT/SIGTERM to end the server command."""

    poll_interval: float = 1.0
    """How often the server command checks for changes in discovered URLs."""

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv
        self.stop_event = threading.Event()

    def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    def _print_urls(self, urls: List[str]) -> None:
        print(json.dumps(sorted(urls), indent=2))
        sys.stdout.flush()

    def cmd_server(self) -> int:
        service_uuid: str = self._args.uuid
        if service_uuid is None:
            service_uuid = str(uuid_module.uuid4())
        service: str = self._args.service
        ip_ver: int = self._args.ip_version
        only: bool = self._args.only

        def on_signal(signum: int, frame: Any) -> None:
            logging.debug(f"cmd_server: received signal {signum}; stopping")
            self.stop_event.set()

        in_main_thread = threading.current_thread() is threading.main_thread()
        old_handlers: Dict[int, Any] = {}
        if in_main_thread:
            for sig in (SIGINT, SIGTERM):
                old_handlers[sig] = signal.signal(sig, on_signal)
        try:
            with SsdpEndpoint.get_instance() as endpoint:
                endpoint.register_service(service_uuid, service)
                logging.info(f"Advertising uuid={service_uuid} service={service}")
                endpoint.enable_periodic_notify(True)
                endpoint.enable_periodic_search(True)
                last_urls: Optional[List[str]] = None
                while not self.stop_event.is_set():
                    urls = sorted(endpoint.get_server_urls(ip_ver, only))
                    if urls != last_urls:
                        self._print_urls(urls)
                        last_urls = urls
                    self.stop_event.wait(self.poll_interval)
        finally:
            for sig, old_handler in old_handlers.items():
                signal.signal(sig, old_handler)
        return 0

    def cmd_search(self) -> int:
        wait_time: float = self._args.wait_time
        ip_ver: int = self._args.ip_version
        only: bool = self._args.only
        with SsdpEndpoint.get_instance() as endpoint:
            endpoint.enable_periodic_search(True)
            self.stop_event.wait(wait_time)
            urls = endpoint.get_server_urls(ip_ver, only)
        self._print_urls(urls)
        return 0

    def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    def run(self) -> int:
        """Run the ssdp-endpoint command-line tool with provided arguments

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(description="Discover and advertise services with SSDP.")

        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')

        def add_query_args(p: argparse.ArgumentParser) -> None:
            p.add_argument('--ip-version', dest='ip_version', type=int, default=4, choices=[4, 6],
                           help='The preferred address family of discovered URLs. Default: 4')
            p.add_argument('--only', action='store_true', default=False,
                           help='Only report URLs discovered on the preferred address family')

        # ======================= server

        parser_server = subparsers.add_parser('server', description="Advertise a service and report discovered peers until interrupted")
        parser_server.add_argument('--service', required=True,
                            help='''The port number of the service to advertise''')
        parser_server.add_argument('--uuid', default=None,
                            help='''The unique ID of the service. Default: a random UUID''')
        add_query_args(parser_server)
        parser_server.set_defaults(func=self.cmd_server)

        # ======================= search

        parser_search = subparsers.add_parser('search', description="Search for peers and print their URLs")
        parser_search.add_argument('--wait-time', dest='wait_time', type=float, default=3.0,
                            help='''The amount of time to wait for responses, in seconds. Default: 3.0''')
        add_query_args(parser_search)
        parser_search.set_defaults(func=self.cmd_search)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            func: Callable[[], int] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            print(f"ssdp-endpoint: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"ssdp-endpoint: Unhandled exception: {ex}", file=sys.stderr)
            raise

        return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

def main() -> None:
    sys.exit(run())

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    main()
