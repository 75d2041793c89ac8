"""Print a signed identity token for local testing.

Usage: python scripts/issue_token.py <user_id> [admin|support|moderator|user]
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from docvault.infrastructure.security import create_access_token  # noqa: E402
from docvault.modules.permission import Role  # noqa: E402


def main() -> None:
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    role = Role(sys.argv[2]) if len(sys.argv) > 2 else Role.USER
    print(create_access_token(sys.argv[1], role))


if __name__ == "__main__":
    main()
