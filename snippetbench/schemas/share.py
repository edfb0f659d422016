"""
Share Schemas — снапшот рабочего пространства для публикации по ссылке
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .cases import Dependency, TestCase
from .results import BenchmarkResult


ExpiryOption = Literal["7d", "30d"]

# Время жизни снапшота (в секундах)
EXPIRY_OPTIONS: Dict[str, int] = {
    "7d": 7 * 24 * 60 * 60,
    "30d": 30 * 24 * 60 * 60,
}


class ShareSnapshot(BaseModel):
    """Полный снапшот: код, зависимости и (необязательно) результаты"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    title: Optional[str] = None
    dependencies: List[Dependency] = Field(default_factory=list)
    setup_code: str = Field(default="", alias="setupCode")
    test_cases: List[TestCase] = Field(default_factory=list, alias="testCases")
    results: List[BenchmarkResult] = Field(default_factory=list)
    async_mode: bool = Field(default=False, alias="asyncMode")
    expiry_option: ExpiryOption = Field(default="30d", alias="expiryOption")
    created_at: str = Field(
        default_factory=lambda: datetime.now().isoformat(),
        alias="createdAt",
    )
