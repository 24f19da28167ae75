"""
Result Uploader Script - posts a result workbook to a running Result Portal.

Usage:
    python upload_results.py results.xlsx                          # Uses default URL
    python upload_results.py results.xlsx http://localhost:8000    # Custom API URL
"""

import os
import sys

import httpx


def post_workbook(url, path):
    with open(path, "rb") as f, httpx.Client(timeout=60.0) as client:
        resp = client.post(url, files={"file": (os.path.basename(path), f)})
    if resp.status_code >= 400:
        try:
            message = resp.json().get("error", resp.text)
        except ValueError:
            message = resp.text
        print(f"HTTP Error {resp.status_code}: {message}")
        sys.exit(1)
    return resp.json()


def main():
    if len(sys.argv) < 2:
        print("Usage: python upload_results.py <workbook.xlsx|.csv> [api_url]")
        sys.exit(2)

    workbook_path = sys.argv[1]
    api_url = sys.argv[2] if len(sys.argv) > 2 else os.getenv("API_URL", "http://localhost:8000")
    upload_url = f"{api_url}/api/upload"

    if not os.path.exists(workbook_path):
        print(f"Error: Could not find {workbook_path}")
        sys.exit(1)

    print(f"Uploading: {workbook_path}")
    print(f"Sending to: {upload_url}")
    print()

    result = post_workbook(upload_url, workbook_path)

    print("=" * 60)
    print("UPLOAD SUMMARY")
    print("=" * 60)
    print(f"  Results Saved:     {result.get('count', '?')}")
    print(f"  Sheets Processed:  {result.get('sheets', '?')}")
    print("=" * 60)


if __name__ == "__main__":
    main()
