import json
import sys
import urllib.error
import urllib.request

BASE_URL = "http://127.0.0.1:4000/api/v1"
PHONE = "09120000000"
PASSWORD = "P@ssw0rd"


def post(path: str, payload: dict) -> dict:
    data = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        f"{BASE_URL}{path}",
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(req) as resp:
        body = resp.read().decode("utf-8")
        print(f"POST {path} -> {resp.status}\n{body}\n")
        return json.loads(body)


def main() -> None:
    """Log in (signing up first if needed) against a development server."""
    phone = sys.argv[1] if len(sys.argv) > 1 else PHONE
    password = sys.argv[2] if len(sys.argv) > 2 else PASSWORD

    try:
        otp = post("/auth/request-otp", {"phoneNumber": phone, "purpose": "login"})["otp"]
        path = "/auth/login"
    except urllib.error.HTTPError:
        otp = post("/auth/request-otp", {"phoneNumber": phone, "purpose": "signup"})["otp"]
        path = "/auth/signup"

    session = post(path, {"phoneNumber": phone, "password": password, "otp": otp})
    token = session.get("accessToken")
    if not token:
        raise RuntimeError("No accessToken in the response")
    print(f"Access token for {phone}: {token}")


if __name__ == "__main__":
    main()
