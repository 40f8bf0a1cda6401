"""WeatherScout: weather badges and decluttered map markers for destination candidates."""

__version__ = "0.1.0"
