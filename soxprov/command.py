#!/usr/bin/env python3
import argparse
import sys

from typing import Optional, Sequence

from soxprov.controller import AppController, ManagementController
from soxprov.enum import Command, Defaults, PortMode


class SoxProvCmd:

    def parse_args(
        self, argv: Optional[Sequence[str]] = None
    ) -> tuple[argparse.ArgumentParser, argparse.Namespace]:
        main_parser = argparse.ArgumentParser(
            description='Install gost as a SOCKS5 proxy systemd service')
        port_group = main_parser.add_mutually_exclusive_group()
        port_group.add_argument(
            '--port', type=str, default=None,
            help='Listen port for the proxy [default: ask interactively]')
        port_group.add_argument(
            '--random-port', action='store_true',
            help='Pick a random unused port between {} and {}'.format(*Defaults.PORT_RANGE))
        main_parser.add_argument(
            '--max-attempts', type=int, default=Defaults.PORT_ATTEMPTS,
            help=f'Random port draws before giving up [default: {Defaults.PORT_ATTEMPTS}]')
        main_parser.add_argument(
            '--timeout', type=float, default=Defaults.NETWORK_TIMEOUT,
            help=f'Timeout in seconds for each network request [default: {Defaults.NETWORK_TIMEOUT}]')
        main_parser.add_argument(
            '-v', '--verbose', action='count', default=0, help='Increase verbosity')

        return main_parser, main_parser.parse_args(argv)

    def run(self, main_parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
        if args.max_attempts < 1:
            main_parser.error('--max-attempts must be at least 1')

        port_mode = None
        if args.random_port:
            port_mode = PortMode.Random
        elif args.port is not None:
            port_mode = PortMode.Manual

        app_controller = AppController(args.verbose, timeout=args.timeout, max_attempts=args.max_attempts)
        return app_controller.run(port_mode, args.port)


class S5Cmd:

    def parse_args(
        self, argv: Optional[Sequence[str]] = None
    ) -> tuple[argparse.ArgumentParser, argparse.Namespace]:
        main_parser = argparse.ArgumentParser(
            prog='s5', description='Manage the SOCKS5 proxy service', add_help=True)
        main_parser.add_argument(
            'command', nargs='?', default=None,
            help='[ "{}" ] [default: show info and usage]'.format('" | "'.join([
                Command.Start, Command.Stop, Command.Restart,
                Command.Status, Command.Info, Command.Update])))
        main_parser.add_argument(
            '-v', '--verbose', action='count', default=0, help='Increase verbosity')

        return main_parser, main_parser.parse_args(argv)

    def run(self, main_parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
        management_controller = ManagementController(args.verbose)
        return management_controller.dispatch(args.command)


def main(argv: Optional[Sequence[str]] = None) -> None:
    soxprovcmd = SoxProvCmd()
    main_parser, args = soxprovcmd.parse_args(argv)
    sys.exit(soxprovcmd.run(main_parser, args))


def s5_main(argv: Optional[Sequence[str]] = None) -> None:
    s5cmd = S5Cmd()
    main_parser, args = s5cmd.parse_args(argv)
    sys.exit(s5cmd.run(main_parser, args))
