"""
Register a user with the local database backend and print an access token.

The hosted backend owns sign-up; this is how a local deployment gets a
user to call the API with.
"""
import argparse
import logging
import uuid
from budgetwise.db.session import SessionLocal, init_db
from budgetwise.schemas.user import UserIdentity
from budgetwise.services.sql_backend import SqlBackend

logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create a local user and print its access token.")
    parser.add_argument("--email", required=True, help="Email address of the user")
    parser.add_argument("--name", default=None, help="Display name")
    parser.add_argument("--id", dest="user_id", default=None, help="User id (random if omitted)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    init_db()
    identity = UserIdentity(id=args.user_id or str(uuid.uuid4()), email=args.email, name=args.name)
    token = SqlBackend(SessionLocal).register_user(identity)
    logger.info(f"Registered user {identity.id}")
    print(token)
    return token


if __name__ == "__main__":
    main()
