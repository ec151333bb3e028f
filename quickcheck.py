import sys
from urllib.parse import quote

import requests

base = sys.argv[1] if len(sys.argv) > 1 else "http://127.0.0.1:8000"
names = sys.argv[2] if len(sys.argv) > 2 else "quickcheck_names.txt"
ok = 0
total = 0

for line in open(names):
    q = line.strip()
    if not q:
        continue
    total += 1
    name = quote(q, safe="")
    exists = requests.get(f"{base}/api/name/exists/{name}")
    resp = requests.get(f"{base}/api/name/300/300/ffffff/000000/{name}")
    if resp.ok and resp.headers.get("content-type") == "image/png":
        ok += 1
        print("OK  ", q, exists.text)
    else:
        print("FAIL", q, exists.text, resp.status_code, resp.text)

print(f"\nSummary: {ok}/{total} passed")
