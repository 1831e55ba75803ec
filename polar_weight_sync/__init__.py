__all__ = ["CLEANED_HEADER", "__version__"]

__version__ = "0.1.0"

# Header of the cleaned log, in the exact order the uploader reads it back
CLEANED_HEADER = ["Date", "Weight (kg)"]
