"""Timestamp based PDB names."""
import datetime


def generate_pdb_name(now=None):
    """Return a name like ``pdb_2025_007_031_017_020_008``.

    Year is four digits; month, day, hour, minute and second are zero padded
    to three digits. ``now`` defaults to the current local time.
    """
    if now is None:
        now = datetime.datetime.now()
    return "pdb_{:d}_{:03d}_{:03d}_{:03d}_{:03d}_{:03d}".format(
        now.year, now.month, now.day, now.hour, now.minute, now.second
    )
