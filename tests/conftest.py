import pytest

from commission_recon.config import get_default_config
from commission_recon.policy import CommissionPolicy


@pytest.fixture
def policy():
    return CommissionPolicy.default()


@pytest.fixture
def cfg():
    return get_default_config()
