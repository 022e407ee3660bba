"""Pytest configuration for docbox_gateway tests."""
import sys
from pathlib import Path

# Add src/ to path for src-layout imports
_PROJECT_ROOT = Path(__file__).parent.parent
_SRC = _PROJECT_ROOT / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from docbox_gateway.models import DocboxRequestTenant, DocboxRequestUser


@pytest.fixture
def tenant():
    return DocboxRequestTenant(id='tenant-1', env='Development')


@pytest.fixture
def user():
    return DocboxRequestUser(id='user-1', name='Jane Doe', image_id='img-1')
