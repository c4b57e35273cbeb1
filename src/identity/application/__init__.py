"""
Identity Application Layer
Session store, profile resolution, second factor, audit and invitation services
"""
