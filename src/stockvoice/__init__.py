"""StockVoice：自然语言库存命令解析与对账"""

__version__ = "0.1.0"
