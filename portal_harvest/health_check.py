"""Session check: does the portal accept the supplied cookie?"""

import time
from typing import Optional

from .catalog import fetch_page
from .client import PortalClient
from .errors import DecodeError, HarvestError, TransportError
from .models import Credential, RetryPolicy


def run_health_check(client: PortalClient, credential: Credential, policy: RetryPolicy) -> int:
    """Fetch a single one-record catalog page and report the result.

    Returns 0 when the portal answered with a well-formed page, 1 otherwise.
    """
    print("=" * 80)
    print("Portal Session Check".center(80))
    print("=" * 80)
    print()
    print(f"Testing catalog access with: {client.search_url}")
    print(f"Retry policy: {policy.max_attempts} attempts, {policy.initial_delay:g}s delay, x{policy.backoff_multiplier:g} backoff")
    print()

    start_time = time.time()
    page = None
    error: Optional[HarvestError] = None
    try:
        page = fetch_page(client, credential, 0, 1, policy)
    except HarvestError as exc:
        error = exc
    elapsed = time.time() - start_time

    print("=" * 80)
    print("Session Check Results".center(80))
    print("=" * 80)

    if page is not None:
        print("✓ Status: HEALTHY")
        print(f"✓ Response time: {elapsed:.2f}s")
        print(f"✓ Catalog reports {page.total_items} records")
        if page.items:
            first = page.items[0]
            print(f"✓ Most recent record: {first.name} ({first.guid})")
        else:
            print("⚠ The catalog is empty for this session; the cookie may lack access rights")
        return 0

    print("✗ Status: UNHEALTHY")
    print(f"✗ Response time: {elapsed:.2f}s")
    print(f"✗ Error: {error}")
    print()
    print("Recommendations:")
    if isinstance(error, DecodeError):
        print("  1. The portal did not return catalog JSON; the cookie has most likely expired")
        print("  2. Log in again in your browser and copy a fresh document.cookie value")
    elif isinstance(error, TransportError):
        print("  1. Check your internet connection and that the portal is reachable in a browser")
        print("  2. Verify --base-url and --lang")
        print("  3. Try a longer --timeout or more --retry-count")
    return 1
