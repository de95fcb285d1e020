from __future__ import annotations

from uuid import uuid4

import pytest

from monetiq.services.quota_ledger import QuotaLedger
from tests.fakes import (
    FakeAdPacksRepo,
    FakeAssetsRepo,
    FakeBackend,
    FakeMusicJobsRepo,
    FakeMusicOutputsRepo,
    FakeProviderCallsRepo,
    FakeUsageCreditsRepo,
)


@pytest.fixture
def user_id():
    return str(uuid4())


@pytest.fixture
def jobs_repo():
    return FakeMusicJobsRepo()


@pytest.fixture
def credits_repo(user_id):
    """A user holding 60 standard and 30 premium seconds."""
    return FakeUsageCreditsRepo({user_id: {"seconds_standard": 60, "seconds_premium": 30}})


@pytest.fixture
def ledger(credits_repo):
    return QuotaLedger(credits_repo)


@pytest.fixture
def outputs_repo():
    return FakeMusicOutputsRepo()


@pytest.fixture
def assets_repo():
    return FakeAssetsRepo()


@pytest.fixture
def calls_repo():
    return FakeProviderCallsRepo()


@pytest.fixture
def ads_repo():
    return FakeAdPacksRepo()


@pytest.fixture
def backend():
    return FakeBackend()
