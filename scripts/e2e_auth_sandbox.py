#!/usr/bin/env python3
"""htpasswd gate E2E sandbox runner.

This is a fast, hermetic integration test that validates:
- /health remains publicly accessible when every route is protected
- all other routes refuse anonymous callers (403) and bad credentials (401)
- valid Authorization succeeds, wrong passwords get 401, non-admins get 403
- the admin reload endpoint picks up a rewritten htpasswd file

It is intentionally executed in a separate process to ensure the app reads its
configuration from environment variables before import-time initialization.

Run:
  python3 scripts/e2e_auth_sandbox.py
"""

from __future__ import annotations

import base64
import os
import sys
import tempfile
from pathlib import Path

# Ensure repository root is importable
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


def _basic(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def _check(label: str, response, expected: int) -> bool:
    if response.status_code != expected:
        print(f"[e2e-auth] {label} expected {expected}, got {response.status_code}: {response.text}")
        return False
    return True


def main() -> int:
    from htpasswd_gate.store import htpasswd_line

    workdir = Path(tempfile.mkdtemp(prefix="htpasswd-e2e-"))
    htpasswd = workdir / "htpasswd"
    htpasswd.write_text(
        "\n".join([htpasswd_line("e2e", "secret"), htpasswd_line("viewer", "view")]) + "\n",
        encoding="utf-8",
    )

    # Force auth on for every route
    os.environ["HTPASSWD_FILE"] = str(htpasswd)
    os.environ["AUTH_PROTECT_ALL"] = "true"
    os.environ["ADMIN_USERS"] = "e2e"

    from fastapi.testclient import TestClient

    from htpasswd_gate.main import app

    with TestClient(app) as client:
        admin = {"Authorization": _basic("e2e", "secret")}
        viewer = {"Authorization": _basic("viewer", "view")}

        checks = [
            # /health is allowlisted
            _check("/health", client.get("/health"), 200),
            # Even Anyone routes sit behind the middleware now
            _check("anonymous /api/whoami", client.get("/api/whoami"), 403),
            _check("anonymous /api/private", client.get("/api/private"), 403),
            _check("authed /api/private", client.get("/api/private", headers=viewer), 200),
            _check(
                "wrong password /api/private",
                client.get("/api/private", headers={"Authorization": _basic("e2e", "wrong")}),
                401,
            ),
            _check("viewer /api/admin/users", client.get("/api/admin/users", headers=viewer), 403),
            _check("admin /api/admin/users", client.get("/api/admin/users", headers=admin), 200),
        ]
        if not all(checks):
            return 2

        # Rewrite the file and reload: viewer disappears
        htpasswd.write_text(htpasswd_line("e2e", "secret") + "\n", encoding="utf-8")
        r = client.post("/api/admin/reload", headers=admin)
        if not _check("admin reload", r, 200):
            return 2
        if r.json().get("users") != 1:
            print(f"[e2e-auth] reload expected 1 user, got {r.text}")
            return 2
        if not _check("removed viewer /api/private", client.get("/api/private", headers=viewer), 401):
            return 2

    print("[e2e-auth] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
