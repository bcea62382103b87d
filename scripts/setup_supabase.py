#!/usr/bin/env python3
"""
Supabase Setup Helper for Praxis

Verifies the Supabase connection and the tables the pipeline writes to,
and prints migration instructions when something is missing.

Usage:
    python scripts/setup_supabase.py

Requirements:
    - Set SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables
    - Or create a .env file with these values
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from postgrest.exceptions import APIError  # noqa: E402
from supabase import Client, create_client  # noqa: E402

from praxis.config import config  # noqa: E402

MIGRATION = "supabase/migrations/001_plans_tasks.sql"

REQUIRED_COLUMNS = {
    "users": "id, total_xp, xp_updated_at",
    "plans": "id, user_id, status, content, version",
    "tasks": "id, plan_id, xp_value, status, version",
}


def get_client() -> Client:
    return create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY)


def check_tables(client: Client) -> list:
    """Return the tables that are missing or lack a required column."""
    print("\n📋 Checking required tables:")

    missing = []
    for table, columns in REQUIRED_COLUMNS.items():
        try:
            client.table(table).select(columns).limit(1).execute()
            print(f"   ✅ {table}")
        except APIError as e:
            print(f"   ❌ {table} ({e.message})")
            missing.append(table)

    return missing


def check_generation_function(client: Client) -> bool:
    """The completion RPC must exist; a random plan id makes it raise 'not found'."""
    try:
        client.rpc("complete_plan_generation", {
            "p_plan_id": "00000000-0000-0000-0000-000000000000",
            "p_expected_version": 0,
            "p_title": "",
            "p_description": "",
            "p_content": {},
            "p_tasks": [],
        }).execute()
    except APIError as e:
        if e.code == "PGRST202":
            print("   ❌ complete_plan_generation() (missing)")
            return False
    print("   ✅ complete_plan_generation()")
    return True


def print_migration_instructions():
    print("\n" + "=" * 60)
    print("📚 MIGRATION INSTRUCTIONS")
    print("=" * 60)
    print(f"""
1. Go to your Supabase Dashboard:
   https://supabase.com/dashboard/project/YOUR_PROJECT_ID

2. Navigate to: SQL Editor (left sidebar)

3. Run: {MIGRATION}

4. After running the migration, run this script again to verify.
""")


def print_env_template():
    print("\n" + "=" * 60)
    print("🔧 REQUIRED ENVIRONMENT VARIABLES")
    print("=" * 60)
    print("""
# Supabase (from your Supabase Dashboard > Settings > API)
SUPABASE_URL=https://xxxxx.supabase.co
SUPABASE_SERVICE_KEY=eyJhbGci...
""")


def main():
    print("=" * 60)
    print("🚀 Praxis - Supabase Setup Helper")
    print("=" * 60)

    if not config.supabase_configured:
        print("\n❌ Missing Supabase credentials!")
        print_env_template()
        return 1

    print(f"\n🔗 Connecting to: {config.SUPABASE_URL}")
    client = get_client()

    missing = check_tables(client)
    function_ok = check_generation_function(client)

    if missing or not function_ok:
        print_migration_instructions()
        return 1

    print("\n✅ Your Supabase database is ready for Praxis.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
