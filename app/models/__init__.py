# app/models/__init__.py

from .job import Job, JOB_STATUSES, REFUND_STATUSES
from .library_file import Document, CompanyFile
