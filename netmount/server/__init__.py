"""Server package"""
