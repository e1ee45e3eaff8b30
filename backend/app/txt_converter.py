"""
JSON -> TXT conversion of generated test cases, in a mail-friendly layout.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


def format_test_case(tc: Dict[str, Any], index: int, separator: str = "---") -> str:
    steps = tc.get("StepsToExecute")
    if isinstance(steps, list):
        steps_text = "\n".join(f"  {i}. {step}" for i, step in enumerate(steps, start=1))
    else:
        steps_text = "No steps provided"

    return "\n".join([
        f"Id: {tc.get('Id') or f'TC-{index + 1}'}",
        f"Description: {tc.get('Description') or 'No description available'}",
        f"PreRequisite: {tc.get('PreRequisite') or 'None'}",
        f"StepsToExecute:\n{steps_text}",
        f"ExpectedResult: {tc.get('ExpectedResult') or 'Not specified'}",
        f"AutomationPossible: {tc.get('AutomationPossible') or 'N/A'}",
        separator
    ])


def convert_json_to_txt(
    json_folder: Union[str, Path],
    txt_folder: Union[str, Path],
    separator: str = "---"
) -> List[Path]:
    """
    Convert every *_testcases.json in json_folder to a *_testcases.txt.

    Returns the files written. Files that can't be converted are logged
    and skipped.
    """
    json_folder = Path(json_folder)
    txt_folder = Path(txt_folder)

    if not json_folder.is_dir():
        logger.error(f"JSON folder not found: {json_folder}")
        return []
    txt_folder.mkdir(parents=True, exist_ok=True)

    files = sorted(json_folder.glob("*_testcases.json"))
    if not files:
        logger.warning(f"No *_testcases.json files found in {json_folder}")
        return []

    written = []
    for path in files:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                test_cases = json.load(f)
            if not isinstance(test_cases, list):
                raise ValueError("expected a JSON array of test cases")

            blocks = [format_test_case(tc, i, separator) for i, tc in enumerate(test_cases)]
            out_path = txt_folder / path.name.replace("_testcases.json", "_testcases.txt")
            with open(out_path, 'w', encoding='utf-8') as f:
                f.write("\n\n".join(blocks))

            logger.info(f"Converted {path.name} -> {out_path.name}")
            written.append(out_path)
        except (OSError, ValueError, AttributeError) as e:
            logger.error(f"Error converting {path.name}: {e}")

    logger.info(f"Conversion completed. TXT files saved in: {txt_folder}")
    return written
