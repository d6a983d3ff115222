import pytest

from certseal import InMemoryRecordStore, SealSigner
from certseal_service import main

# Wire the app once with an in-memory store and an ephemeral key
main.init_services(store=InMemoryRecordStore(), signer=SealSigner.generate(key_id="kid:test-service"))

# Reset state before each test for isolation
@pytest.fixture(autouse=True)
def _reset_service():
    main.STORE.reset()
    main.issue_limiter.reset()
    main.verify_limiter.reset()
    main.STATS.reset()
    yield
