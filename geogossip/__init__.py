"""
GeoGossip - 位置情報付きの期限付きゴシップ投稿
"""
__version__ = "1.0.0"
