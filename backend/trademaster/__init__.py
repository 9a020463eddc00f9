"""TradeMaster backend: authentication API and client"""

__version__ = "1.0.0"
