from __future__ import annotations

import os
import time

import requests
from rich import print

from scripts.seed import DEFAULT_PASSWORD, seed

BASE = os.getenv("API_BASE_URL", "http://127.0.0.1:8000") + "/api"

def request(method: str, path: str, *, jwt: str | None = None, json: dict | None = None) -> requests.Response:
    headers = {"content-type": "application/json"}
    if jwt:
        headers["authorization"] = f"bearer {jwt}"
    return requests.request(method, f"{BASE}{path}", headers=headers, json=json, timeout=10)

def login(email: str) -> str:
    r = request("POST", "/auth/login", json={"email": email, "password": DEFAULT_PASSWORD})
    r.raise_for_status()
    return r.json()["access_token"]

def expect(r: requests.Response, status: int, label: str) -> None:
    ok = r.status_code == status
    colour = "green" if ok else "red"
    print(f"[{colour}]{label}: {r.status_code} (expected {status})[/{colour}]")
    if not ok:
        raise RuntimeError(r.text)

def wait_ready(timeout_s: float = 30.0) -> None:
    deadline = time.time() + timeout_s
    last_err: Exception | None = None

    while time.time() < deadline:
        try:
            r = request("GET", "/ready")
            if r.status_code == 200:
                return
        except requests.RequestException as e:
            last_err = e
        time.sleep(0.5)

    if last_err:
        raise RuntimeError(f"api not ready after {timeout_s}s (last error: {last_err})")
    raise RuntimeError(f"api not ready after {timeout_s}s")

def main() -> None:
    print("[bold]demo: seed -> login -> role, permission and org checks -> audit trail[/bold]")

    wait_ready()
    print("[green]ready ok[/green]")

    s = seed()
    owner_jwt = login(s.owner_email)
    viewer_jwt = login(s.viewer_email)
    child_admin_jwt = login(s.child_admin_email)
    print("users authed")

    # owner sees the parent org and its direct child
    r = request("GET", "/tasks", jwt=owner_jwt)
    r.raise_for_status()
    print("owner sees tasks:", r.json()["total"])

    # viewer only sees what is assigned to them
    r = request("GET", "/tasks", jwt=viewer_jwt)
    r.raise_for_status()
    viewer_tasks = r.json()["tasks"]
    print("viewer sees tasks:", len(viewer_tasks))

    task_id = viewer_tasks[0]["id"]
    expect(request("PATCH", f"/tasks/{task_id}", jwt=viewer_jwt, json={"status": "done"}), 200, "viewer moves card")
    expect(
        request("PATCH", f"/tasks/{task_id}", jwt=viewer_jwt, json={"status": "done", "priority": 5}),
        403,
        "viewer edits priority",
    )
    expect(request("DELETE", f"/tasks/{task_id}", jwt=viewer_jwt), 403, "viewer deletes")
    expect(request("POST", "/tasks", jwt=viewer_jwt, json={"title": "nope"}), 403, "viewer creates")

    # child org admin cannot reach up into the parent org
    expect(request("GET", f"/tasks/{s.task_ids[0]}", jwt=child_admin_jwt), 403, "child admin reads parent task")

    r = request("GET", "/audit/logs?limit=5", jwt=owner_jwt)
    r.raise_for_status()
    print("latest audit entries:")
    for entry in r.json()["logs"]:
        print(f"  {entry['action']:<7} {entry['resource']:<13} id={entry['resource_id']} user={entry['user_id']}")

    print("[bold green]demo complete[/bold green]")

if __name__ == "__main__":
    main()
