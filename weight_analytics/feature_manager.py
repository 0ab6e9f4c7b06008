"""
Feature Manager for the weight tracking engine
Centralized management of feature toggles with dependency checking
"""
from typing import Dict, Any, Optional, Set
import logging

logger = logging.getLogger(__name__)


class FeatureManager:
    """Manages feature toggles with dependency checking"""

    # Feature dependencies (feature -> set of required features)
    DEPENDENCIES = {
        'outlier_confirmation': {'outlier_detection'},
    }

    DEFAULT_FEATURES = {
        # Entry creation
        'outlier_detection': True,
        'backfill_limit': True,

        # Mutation policy
        'edit_window': True,
        'outlier_confirmation': True,

        # Analytics
        'moving_average': True,
        'compliance_tracking': True,

        # Observability
        'performance_metrics': False,
    }

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize with config dict containing features section"""
        self.features = self.DEFAULT_FEATURES.copy()
        self.warnings = []

        if config and 'features' in config:
            self._load_features(config['features'])

        self._validate_dependencies()
        self._log_configuration()

    def _load_features(self, features_config: Dict[str, Any]):
        """Load features from config, handling nested sections"""
        for key, value in features_config.items():
            if isinstance(value, dict):
                for subkey, subvalue in value.items():
                    feature_key = f"{key}_{subkey}"
                    if feature_key in self.DEFAULT_FEATURES:
                        self.features[feature_key] = bool(subvalue)
                    else:
                        self.warnings.append(f"Unknown feature '{feature_key}' ignored")
            elif isinstance(value, bool):
                if key in self.DEFAULT_FEATURES:
                    self.features[key] = value
                else:
                    self.warnings.append(f"Unknown feature '{key}' ignored")

    def _validate_dependencies(self):
        """Disable features whose dependencies are switched off"""
        changes_made = True
        while changes_made:
            changes_made = False
            for feature, deps in self.DEPENDENCIES.items():
                if self.features.get(feature, False):
                    for dep in deps:
                        if not self.features.get(dep, False):
                            logger.warning(
                                f"Feature '{feature}' requires '{dep}'. Disabling '{feature}'."
                            )
                            self.features[feature] = False
                            changes_made = True

    def _log_configuration(self):
        """Log active feature configuration"""
        disabled_features = [k for k, v in self.features.items() if not v]
        if disabled_features:
            logger.info(f"Disabled features: {', '.join(disabled_features)}")

        for warning in self.warnings:
            logger.warning(warning)

    def is_enabled(self, feature: str) -> bool:
        """Check if a feature is enabled"""
        return self.features.get(feature, True)

    def get_enabled_features(self) -> Set[str]:
        return {k for k, v in self.features.items() if v}

    def get_disabled_features(self) -> Set[str]:
        return {k for k, v in self.features.items() if not v}

    def validate_config(self) -> bool:
        """Check all dependencies are met"""
        for feature, deps in self.DEPENDENCIES.items():
            if self.features.get(feature, False):
                for dep in deps:
                    if not self.features.get(dep, False):
                        return False
        return True

    def get_config_summary(self) -> Dict[str, Any]:
        """Get a summary of the feature configuration"""
        return {
            'total_features': len(self.features),
            'enabled': len(self.get_enabled_features()),
            'disabled': len(self.get_disabled_features()),
            'warnings': self.warnings,
            'valid': self.validate_config()
        }
