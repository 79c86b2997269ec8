"""Remote data clients"""
