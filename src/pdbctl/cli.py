"""Command line front end for PDB lifecycle operations.

Connects to a CDB root described in ``pdbctl.yaml`` and runs one of the
``create``, ``teardown``, ``sessions``, ``status`` or ``list`` commands.
"""
import argparse
import logging
import pathlib
import sys

import oracledb

from .cdb import CDB
from .exceptions import LifecycleError

LOG = logging.getLogger(__name__)


def build_arg_parser():
    parser = argparse.ArgumentParser(prog="pdbctl", description=__doc__)
    parser.add_argument(
        "--database",
        required=True,
        help="Name of the CDB entry under 'databases' in pdbctl.yaml.",
    )
    parser.add_argument(
        "--config",
        type=pathlib.Path,
        help="Path to pdbctl.yaml (default: $PDBCTL_CONFIG, $TNS_ADMIN, $ORACLE_HOME/network/admin).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Increase logging verbosity (use -vv for debug).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a PDB from PDB$SEED, open it and save its state.")
    create.add_argument("--name", help="PDB name (default: generated from the current time).")
    create.add_argument("--admin-user", required=True)
    create.add_argument("--admin-password", required=True)

    teardown = sub.add_parser("teardown", help="Close, discard state and drop a PDB including datafiles.")
    teardown.add_argument("name")
    teardown.add_argument("--kill-sessions", action="store_true",
                          help="Evict USER sessions before the first close attempt.")
    teardown.add_argument("--instances-all", action="store_true", default=None,
                          help="Close on all RAC instances.")

    sessions = sub.add_parser("sessions", help="List or kill USER sessions in a PDB.")
    sessions.add_argument("name")
    sessions.add_argument("--kill", action="store_true", help="Kill the listed sessions once.")
    sessions.add_argument("--until-gone", action="store_true",
                          help="With --kill, repeat until no sessions remain.")

    status = sub.add_parser("status", help="Show open mode and saved state of a PDB.")
    status.add_argument("name")

    sub.add_parser("list", help="List containers and their open modes.")
    return parser


def parse_args(argv=None):
    return build_arg_parser().parse_args(argv)


def configure_logging(verbosity):
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", force=True)


def run(cdb, args):
    if args.command == "create":
        name, dest_dir = cdb.provision_pdb(args.admin_user, args.admin_password, name=args.name)
        print(f"{name}\t{dest_dir}")
    elif args.command == "teardown":
        cdb.teardown_pdb(args.name, instances_all=args.instances_all, kill_sessions=args.kill_sessions)
        print(f"{args.name}\tdropped")
    elif args.command == "sessions":
        pdb = cdb.pdb(args.name)
        try:
            if args.kill and args.until_gone:
                rounds = pdb.kill_user_sessions_until_gone()
                print(f"{args.name}\tclear after {rounds} round(s)")
            elif args.kill:
                print(f"{args.name}\t{pdb.kill_user_sessions()} session(s) targeted")
            else:
                for s in pdb.user_sessions():
                    print("\t".join(str(v) for v in (s.inst_id, s.sid, s.serial, s.username,
                                                     s.status, s.machine, s.program, s.module)))
        finally:
            pdb.close()
    elif args.command == "status":
        pdb = cdb.pdb(args.name)
        try:
            saved = pdb.saved_state()
            print(f"open_mode\t{pdb.open_mode()}")
            if saved is None:
                print("saved_state\tnone")
            else:
                print(f"saved_state\t{saved.state}\trestricted={saved.restricted}")
        finally:
            pdb.close()
    elif args.command == "list":
        for pdb in cdb.discover_pdbs():
            try:
                print(f"{pdb.name}\t{pdb.open_mode()}")
            finally:
                pdb.close()
    return 0


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        with CDB.connect(args.database, config_path=args.config) as cdb:
            return run(cdb, args)
    except LifecycleError as exc:
        LOG.error("%s", exc)
        return 1
    except oracledb.Error as exc:
        LOG.error("Database error: %s", exc)
        return 1
    except (FileNotFoundError, ValueError, TypeError) as exc:
        LOG.error("Configuration error: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
