__title__ = "RealizedTax"
__version__ = "0.1.0"
