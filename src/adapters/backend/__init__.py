from .http_ride_backend import HttpRideBackend

__all__ = ["HttpRideBackend"]
