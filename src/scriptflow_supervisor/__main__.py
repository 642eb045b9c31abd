"""Module entrypoint.

Allows:
    python -m scriptflow_supervisor
"""

from __future__ import annotations

from scriptflow_supervisor.server.supervisor_server import main

if __name__ == "__main__":
    main()
