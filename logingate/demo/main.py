"""
Login Gate Demo Application

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

This demo walks one user through a complete login:
- Authorization against a mocked remote service
- The three consent documents, including a too-early acceptance
- Audit log retrieval and metrics export

Time is simulated, so the reading timers do not make the demo wait.
"""

import asyncio
import logging
import sys
from datetime import timedelta

from logingate.common.utils import get_current_time
from logingate.consent import DocumentKey
from logingate.core.gate import GateStatus
from logingate.integration.testing import (
    MockAuthorizationClient, create_test_config, create_test_gate, create_test_user
)


async def run_demo() -> int:
    """Main demo function"""
    print("Login Gate Demo Application")
    print("=" * 50)
    print()

    config = create_test_config(banned_emails="mallory@example.org")
    client = MockAuthorizationClient()
    client.set_active("ada@example.org", short_name="Ada", projects={})

    user = create_test_user("ada", "ada@example.org")
    banned = create_test_user("mallory", "mallory@example.org")
    gate = create_test_gate(config, users=[user, banned], client=client)

    print("✓ Created login gate")
    print(f"  - Support contact: {config.support_contact}")
    print(f"  - Authorization service: {config.authorization_url}")
    print()

    print("Step 1: Banned user")
    print("-" * 40)
    result = await gate.login("mallory")
    print(f"✓ Login status: {result.status.value}")
    print(f"  - Reason: {result.message}")
    print()

    print("Step 2: Authorized user starts logging in")
    print("-" * 40)
    now = get_current_time()
    result = await gate.login("ada", now=now)
    print(f"✓ Login status: {result.status.value}")
    print(f"  - Document: {result.prompt.display_type} ({result.prompt.link})")
    print()

    print("Step 3: Accepting too early")
    print("-" * 40)
    now += timedelta(seconds=2)
    result = await gate.submit_consent("ada", result.state, "accept", now=now)
    print(f"✓ Still on {result.prompt.display_type}")
    print(f"  - Message: {result.message}")
    print()

    print("Step 4: Reading and accepting every document")
    print("-" * 40)
    while result.status == GateStatus.CONSENT_REQUIRED:
        now += timedelta(seconds=config.document(DocumentKey(result.prompt.document_key)).required_seconds)
        print(f"  - Accepting {result.prompt.display_type}")
        result = await gate.submit_consent("ada", result.state, "accept", now=now)

    print(f"✓ Login status: {result.status.value}")
    print(f"  - Attributes: {result.attributes}")
    print()

    print("Step 5: Audit log and metrics")
    print("-" * 40)
    events = await gate.audit_logger.get_events(user_id="ada")
    print(f"✓ Retrieved {len(events)} audit events for ada")
    for event in events:
        print(f"  - {event.event_type}: {event.details}")
    print()
    print(gate.metrics.export().decode())

    await gate.close()
    print("Demo completed successfully!")
    return 0 if result.allowed else 1


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    try:
        return asyncio.run(run_demo())
    except KeyboardInterrupt:
        print("\nDemo interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
