"""
Credscore — Default score configuration
Used when SCORE_CONFIG_PATH is unset.
"""
import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog

from credscore.errors import ConfigurationError
from credscore.score.calculation import ScoreConfig
from credscore.score.constants import DEFAULT_STARTING_SCORE, SignalName
from credscore.score.parser import parse_score_config

logger = structlog.get_logger()

DEFAULT_SCORE_CONFIG: Dict[str, Any] = {
    "base": DEFAULT_STARTING_SCORE,
    "expression": [
        f"[{SignalName.ADDRESS_AGE.value}]",
        f"[{SignalName.SOCIAL_ACCOUNT_AGE.value}]",
        f"[{SignalName.REVIEW_IMPACT.value}]",
        f"[{SignalName.STAKED_AMOUNT_IMPACT.value}]",
        f"[{SignalName.BACKER_COUNT_IMPACT.value}]",
        f"[{SignalName.INVITATION_SOURCE_CREDIBILITY.value}]",
    ],
    "elements": {
        # days since first on-chain transaction
        SignalName.ADDRESS_AGE.value: {"Interval": ["< 90: 0", "< 365: 25", "< 730: 50", "/> 730: 100"]},
        # days since the oldest linked social account was created
        SignalName.SOCIAL_ACCOUNT_AGE.value: {"Interval": ["< 90: 0", "< 365: 25", "/> 365: 50"]},
        SignalName.REVIEW_IMPACT.value: {"Range": [-400, 400]},
        SignalName.STAKED_AMOUNT_IMPACT.value: {"Range": [0, 400]},
        SignalName.BACKER_COUNT_IMPACT.value: {"Range": [0, 400]},
        SignalName.INVITATION_SOURCE_CREDIBILITY.value: {"Range": [0, 300]},
    },
}


def load_score_config(path: Optional[Union[str, Path]] = None) -> ScoreConfig:
    """Load and parse a JSON score configuration, or the built-in default when no path is given."""
    if not path:
        return parse_score_config(DEFAULT_SCORE_CONFIG)

    try:
        raw = json.loads(Path(path).read_text())
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read score configuration {path}: {e}") from e

    config = parse_score_config(raw)
    logger.info("score_config_loaded", path=str(path), signals=config.signal_names, base=config.base)
    return config
