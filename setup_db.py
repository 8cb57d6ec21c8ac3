"""
Database setup script for the Tally backend.
Creates all tables against DATABASE_URL and reports the LLM configuration.

Usage:
    python setup_db.py
    or, for a migration-managed database:
    alembic upgrade head
"""
import asyncio
import os
import sys
from typing import Callable, List, Tuple

from sqlalchemy import text

from app.config import settings
from app.database import close_db, engine, init_db

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_status(message: str, status: bool):
    """Print colored status message."""
    symbol = f"{GREEN}✓{RESET}" if status else f"{RED}✗{RESET}"
    print(f"{symbol} {message}")


async def check_env_file() -> bool:
    """Check if .env file exists. Environment variables work as well."""
    if os.path.exists(".env"):
        print_status(".env file exists", True)
    else:
        print(f"  {YELLOW}No .env file, using process environment{RESET}")
    return True


async def create_tables() -> bool:
    """Connect to DATABASE_URL and create every table."""
    try:
        await init_db()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        print_status("Tables created/verified: profiles, events, user_settings", True)
        return True
    except Exception as e:
        print_status(f"Database setup failed: {str(e)}", False)
        print(f"  {YELLOW}Check DATABASE_URL and that the database server is running{RESET}")
        return False


async def check_llm() -> bool:
    """Report whether an LLM API key is configured. Never fails the setup."""
    if settings.llm_configured:
        print_status(f"LLM configured: {settings.LLM_MODEL} at {settings.LLM_BASE_URL}", True)
    else:
        print(f"  {YELLOW}LLM_API_KEY not set; the AI assistant will be disabled{RESET}")
    return True


async def check_admins() -> bool:
    admins = settings.get_admin_emails()
    if admins:
        print_status(f"Admin emails: {', '.join(admins)}", True)
    else:
        print(f"  {YELLOW}ADMIN_EMAILS not set; promote admins via PATCH /api/admin/users/{{id}}/role{RESET}")
    return True


async def main():
    """Run all setup steps."""
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}Tally Backend - Database Setup{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

    steps: List[Tuple[str, Callable]] = [
        ("Environment File", check_env_file),
        ("Database Tables", create_tables),
        ("LLM Configuration", check_llm),
        ("Admin Accounts", check_admins),
    ]

    results = []

    for step_name, step_func in steps:
        print(f"\n{BLUE}Checking {step_name}...{RESET}")
        results.append(await step_func())

    await close_db()

    print(f"\n{BLUE}{'='*60}{RESET}")
    passed = sum(results)
    total = len(results)

    if passed == total:
        print(f"{GREEN}✓ Setup complete! ({passed}/{total}){RESET}")
        print(f"\n{GREEN}You're ready to run the backend:{RESET}")
        print("  uvicorn app.main:app --reload")
    else:
        print(f"{RED}✗ Setup failed ({passed}/{total} steps passed){RESET}")
        sys.exit(1)

    print(f"{BLUE}{'='*60}{RESET}\n")


if __name__ == "__main__":
    asyncio.run(main())
