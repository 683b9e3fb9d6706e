"""PhishGuard: classifies web pages as legitimate, suspicious or phishing."""

__version__ = "1.0.0"
