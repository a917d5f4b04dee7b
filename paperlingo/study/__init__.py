from .study_service import CardNotFoundError, ImportReport, SaveResult, VocabularyService

__all__ = [
    "VocabularyService",
    "SaveResult",
    "ImportReport",
    "CardNotFoundError",
]
