#!/usr/bin/env python3
"""Simple usage example of RegisterOptions.

This example walks through the life of one option record:
1. Register a schema (defaults are seeded, nothing is written)
2. Persist a single value with set_option
3. Stage several values and commit them in one write
4. Veto writes with a persist hook
"""

from optionsengine import InMemoryHost, RegisterOptions, RestrictedDefaultWritePolicy
from optionsengine.core import rules
from optionsengine.storage.host import blog_table


def main():
    """Demonstrate the schema, staging and commit workflow."""
    print("=" * 60)
    print("optionsengine Simple Usage Example")
    print("=" * 60)

    host = InMemoryHost(current_blog_id=1, current_user_id=1)
    host.grant(1, "manage_options")

    print("\n1. Registering schema...")
    options = RegisterOptions.site("my_plugin", host)
    options.with_policy(RestrictedDefaultWritePolicy(host))
    options.register_schema(
        {
            "retries": {"default": 3, "sanitize": [rules.to_int], "validate": [rules.is_positive_int]},
            "mode": {"default": "fast", "validate": [rules.one_of("fast", "safe")]},
            "tags": {"default": [], "sanitize": [rules.to_list], "validate": [rules.is_list]},
        }
    )
    print(f"  Seeded defaults: {options.get_options()}")
    print(f"  Stored record:   {host.read(blog_table(1), 'my_plugin')}")

    print("\n2. Persisting one value...")
    ok = options.set_option("retries", "5")
    print(f"  set_option('retries', '5') -> {ok}")
    print(f"  Stored record:   {host.read(blog_table(1), 'my_plugin')}")

    print("\n3. Staging and committing...")
    options.stage_option("mode", "safe").stage_option("tags", ("alpha", "beta"))
    print(f"  commit_replace() -> {options.commit_replace()}")
    print(f"  Second commit_replace() is a no-op -> {options.commit_replace()}")
    print(f"  Stored record:   {host.read(blog_table(1), 'my_plugin')}")

    print("\n4. Vetoing writes with a hook...")
    options.add_persist_hook(lambda allowed, ctx: allowed and ctx.operation != "delete")
    print(f"  delete_option('tags') -> {options.delete_option('tags')}")
    print(f"  Overlay still has tags: {options.get_option('tags')}")


if __name__ == "__main__":
    main()
