from songshelf.models.file_record import FileRecord

__all__ = ["FileRecord"]
