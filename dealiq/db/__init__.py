from dealiq.db.memory import InMemoryRepository
from dealiq.db.ports import AnalysisRepository
from dealiq.db.repository import Repository
