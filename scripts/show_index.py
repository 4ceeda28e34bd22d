import sys
import httpx
import os

MAX_MEMBERS_SHOWN = 20


def show_index():
    base_url = os.getenv("API_URL", "http://localhost:8000").rstrip("/")
    url = f"{base_url}/admin/index"
    headers = {"x-admin-token": os.getenv("ADMIN_TOKEN", "admin-secret-99")}

    try:
        resp = httpx.get(url, headers=headers, timeout=10)
    except httpx.HTTPError as e:
        print(f"[FAIL] Network Error - {e}")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"[FAIL] Status {resp.status_code}: {resp.text[:500]}")
        sys.exit(1)

    data = resp.json().get("data")
    if not isinstance(data, dict):
        print("[FAIL] Unexpected response: missing or invalid data")
        sys.exit(1)

    print("=== Token-link index contents ===\n")
    if not data:
        print("(no index keys found)")
        return

    for key in sorted(data):
        members = data[key] or []
        shown = ", ".join(members[:MAX_MEMBERS_SHOWN])
        more = "..." if len(members) > MAX_MEMBERS_SHOWN else ""
        print(key)
        print(f"  => [{len(members)}] {shown}{more}")


if __name__ == "__main__":
    show_index()
