#!/usr/bin/env python3
"""
Mirror Sync - Keep a secondary git remote in lockstep with origin.

Each run brings the configured branch up to date with origin, merges the
secondary remote into it while resolving every conflict in favor of the
origin-derived side, pushes the result back to origin when there is
something new, and force-pushes it onto the secondary remote.

Meant to be invoked once per CI pipeline trigger.

Copyright (c) 2026 The mirror-sync authors
Licensed under the MIT License.

License: MIT
"""

from __future__ import annotations

import sys
from typing import NoReturn

from argument_parser import parse_arguments
from mirror_synchronizer import MirrorSynchronizer

# Exit codes
EXIT_SUCCESS = 0
EXIT_EXECUTION_ERROR = 1


def main() -> NoReturn:
    if __name__ != "__main__":
        sys.exit(EXIT_EXECUTION_ERROR)

    cfg = parse_arguments()
    synchronizer = MirrorSynchronizer(cfg)
    sys.exit(synchronizer.run())


if __name__ == "__main__":
    main()
