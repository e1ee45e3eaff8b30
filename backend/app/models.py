from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from enum import Enum


class TestCaseType(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    EDGE = "Edge"


class TestCase(BaseModel):
    """A single AI-generated test case, as written by the generator."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(alias="Id")
    description: str = Field(default="", alias="Description")
    pre_requisite: Optional[str] = Field(default=None, alias="PreRequisite")
    steps_to_execute: List[str] = Field(default_factory=list, alias="StepsToExecute")
    expected_result: Optional[str] = Field(default=None, alias="ExpectedResult")
    test_case_type: TestCaseType = Field(default=TestCaseType.POSITIVE, alias="TestCaseType")
    automation_possible: bool = Field(default=False, alias="AutomationPossible")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Some generations number the ids
        return str(value)

    @field_validator("test_case_type", mode="before")
    @classmethod
    def _normalize_type(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered.startswith("neg"):
                return TestCaseType.NEGATIVE
            if lowered.startswith("edge") or "boundary" in lowered:
                return TestCaseType.EDGE
            return TestCaseType.POSITIVE
        return value

    @field_validator("automation_possible", mode="before")
    @classmethod
    def _parse_yes_no(cls, value):
        if isinstance(value, str):
            return value.strip().lower() in ("yes", "true", "y")
        return bool(value)

    @field_validator("steps_to_execute", mode="before")
    @classmethod
    def _steps_as_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [line.strip() for line in value.splitlines() if line.strip()]
        return value

    @property
    def is_negative(self) -> bool:
        return self.test_case_type == TestCaseType.NEGATIVE


class Story(BaseModel):
    """An issue-tracker story used as input for test generation."""
    key: str
    summary: str = ""
    description: str = ""
    assignee: str = "Unassigned"
    assignee_email: str = ""


class CaseStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


class CaseSummary(BaseModel):
    """Aggregate outcome of running one test case."""
    test_case_id: str
    description: str = ""
    test_case_type: TestCaseType
    status: CaseStatus = CaseStatus.PASSED
    steps_passed: int = 0
    steps_failed: int = 0
    steps_skipped: int = 0
    expected_result_verified: Optional[bool] = None
    error_message: Optional[str] = None
    final_screenshot_path: Optional[str] = None
    started_at: datetime = Field(default_factory=datetime.now)
    duration: float = 0.0


class RunReport(BaseModel):
    """Summary of a whole runner invocation."""
    total_loaded: int = 0
    cases: List[CaseSummary] = []

    @property
    def passed(self) -> int:
        return sum(1 for c in self.cases if c.status == CaseStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for c in self.cases if c.status == CaseStatus.FAILED)
