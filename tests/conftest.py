from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tests._fixtures import solidity
from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture(autouse=True)
def _reset_sigscan_logger() -> Iterator[None]:
    """Drop handlers installed by CLI runs so later tests do not write to closed streams."""
    yield
    logger = logging.getLogger("sigscan")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def project_builder(tmp_path: Path) -> ProjectBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture
def foundry_project(project_builder: ProjectBuilder) -> ProjectBuilder:
    """A Foundry layout with used and unused library contracts."""
    project_builder.write(
        {
            "foundry.toml": "[profile.default]\nsrc = 'src'\n",
            "src/Token.sol": solidity.TOKEN,
            "lib/openzeppelin/contracts/token/ERC20.sol": solidity.ERC20,
            "lib/openzeppelin/contracts/access/Ownable.sol": solidity.OWNABLE,
            "lib/other/Unused.sol": solidity.UNUSED_LIB,
            "test/Token.t.sol": solidity.TOKEN_TEST,
            "script/Deploy.s.sol": solidity.DEPLOY,
        }
    )
    return project_builder
