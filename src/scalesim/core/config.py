# src/scalesim/core/config.py

import logging
import os

from dotenv import load_dotenv

# Load environment variables from a .env file located in the project root
dotenv_path = os.path.join(os.path.dirname(__file__), "..", "..", "..", ".env")
load_dotenv(dotenv_path=dotenv_path)

_TRUTHY = ("true", "1", "t", "y", "yes")

DEFAULT_PRICING_FILE = os.path.join(os.path.dirname(__file__), "..", "data", "aws_pricing_eu-west-1.json")


class Config:
    """
    Handles the application's configuration by loading values from environment variables.
    """

    # --- Logging variables ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # --- Virtual cluster variables ---
    KUBE_NAMESPACE = os.getenv("KUBE_NAMESPACE", "default")
    TRIAL_SCHEDULER_NAME = os.getenv("TRIAL_SCHEDULER_NAME", "bin-packing-scheduler")
    CLUSTER_DESCRIPTOR_DIR = os.getenv("CLUSTER_DESCRIPTOR_DIR", "clusters")

    # --- Recommendation engine variables ---
    POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "2"))
    ROUND_TIMEOUT_SECONDS = float(os.getenv("ROUND_TIMEOUT_SECONDS", "10"))
    SCALE_DOWN_TIMEOUT_SECONDS = float(os.getenv("SCALE_DOWN_TIMEOUT_SECONDS", "10"))
    MAX_ROUNDS = int(os.getenv("MAX_ROUNDS", "100"))
    DEFAULT_LEAST_WASTE = float(os.getenv("DEFAULT_LEAST_WASTE", "1.0"))
    DEFAULT_LEAST_COST = float(os.getenv("DEFAULT_LEAST_COST", "1.0"))

    # --- Pricing variables ---
    PRICING_FILE = os.getenv("PRICING_FILE", DEFAULT_PRICING_FILE)
    # Allowed values: 'pay_as_you_go', 'ri_1_year', 'ri_3_years'
    PRICING_TERM = os.getenv("PRICING_TERM", "ri_3_years").lower()

    # --- API variables ---
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8000"))
    API_CORS_ALLOW_ALL = os.getenv("API_CORS_ALLOW_ALL", "True").lower() in _TRUTHY

    def validate_instance(self):
        if self.POLL_INTERVAL_SECONDS <= 0:
            raise ValueError("POLL_INTERVAL_SECONDS must be greater than zero.")
        if self.ROUND_TIMEOUT_SECONDS <= 0 or self.SCALE_DOWN_TIMEOUT_SECONDS <= 0:
            raise ValueError("ROUND_TIMEOUT_SECONDS and SCALE_DOWN_TIMEOUT_SECONDS must be greater than zero.")
        if self.MAX_ROUNDS < 1:
            raise ValueError("MAX_ROUNDS must be at least 1.")
        if self.PRICING_TERM not in ("pay_as_you_go", "ri_1_year", "ri_3_years"):
            raise ValueError("PRICING_TERM must be one of 'pay_as_you_go', 'ri_1_year' or 'ri_3_years'.")
        if self.DEFAULT_LEAST_WASTE < 0 or self.DEFAULT_LEAST_COST < 0:
            raise ValueError("Strategy weights must not be negative.")
        if not os.path.exists(self.PRICING_FILE):
            logging.getLogger(__name__).warning(
                "PRICING_FILE '%s' does not exist; every machine type will be priced at 0.", self.PRICING_FILE
            )


# Instantiate the config to be imported by other modules
config = Config()
config.validate_instance()
