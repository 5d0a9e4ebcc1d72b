"""
Create a user or service account. Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user ops@example.com your-secure-password service
"""
import argparse
import sys

from app.core.database import SessionLocal
from app.core.security import EMAIL_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.models.user import Role
from app.services.errors import ServiceError, UserAlreadyExistsError
from app.services.factory import build_auth_service


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a ProjectKit user or service account.")
    parser.add_argument("email", help=f"Email (at most {EMAIL_MAX_LEN} chars)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument(
        "role",
        nargs="?",
        default=Role.USER.value,
        choices=[r.value for r in Role],
    )
    args = parser.parse_args()

    email = args.email.strip()
    if "@" not in email or len(email) > EMAIL_MAX_LEN:
        print("Invalid email.", file=sys.stderr)
        return 1
    if not PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN:
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.",
            file=sys.stderr,
        )
        return 1

    db = SessionLocal()
    try:
        auth = build_auth_service(db)
        user = auth.signup(email, args.password, Role(args.role))
        print(f"Created user '{user.email}' (id={user.id}) with role '{user.role}'.")
        return 0
    except UserAlreadyExistsError:
        print(f"User '{email}' already exists.", file=sys.stderr)
        return 1
    except ServiceError as e:
        print(f"Failed to create user: {e.message}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
