"""
Utility functions to validate and analyze YAML rules for duplications and overlaps.

The loader refuses a rule set with duplicate tech ids; this module reads the raw
YAML instead so that every problem can be reported at once.
"""

import os
import yaml
from typing import List, Dict, Any
from collections import defaultdict
from enum import Enum

from rules.rules_loader import DEFAULT_TECHS_DIR


class CheckCombination(Enum):
    """Available combinations for checking duplicates."""
    TECH_ONLY = {'tech'}
    NAME_ONLY = {'name'}
    NAME_CATEGORY = {'name', 'category'}

    def __str__(self) -> str:
        """Return human-readable combination name."""
        names = {
            'tech': 'Tech',
            'name': 'Name',
            'category': 'Category',
        }
        return ' + '.join(names[f] for f in sorted(self.value))


def load_raw_rules(rules_path: str = DEFAULT_TECHS_DIR, specific_file: str = None) -> List[Dict[str, Any]]:
    """Load all YAML rules from a directory or specific file, tracking file origins."""
    all_rules = []
    filenames = [specific_file] if specific_file else sorted(os.listdir(rules_path))
    for filename in filenames:
        if not filename.endswith(('.yaml', '.yml')):
            continue
        filepath = os.path.join(rules_path, filename)
        if not os.path.exists(filepath):
            continue
        with open(filepath, 'r', encoding='utf-8') as f:
            rules = yaml.safe_load(f)
        if isinstance(rules, list):
            default_category = os.path.splitext(filename)[0]
            for rule in rules:
                if not isinstance(rule, dict):
                    continue
                rule = dict(rule)
                rule.setdefault('category', default_category)
                rule.setdefault('name', rule.get('tech'))
                rule['__file__'] = filename
                all_rules.append(rule)
    return all_rules


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def detect_duplicates_by_combination(
    rules: List[Dict[str, Any]],
    combination: CheckCombination = CheckCombination.TECH_ONLY,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Detect duplicate rules by specified combination of attributes.

    Args:
        rules: List of rule dictionaries from YAML
        combination: CheckCombination enum specifying what to check

    Returns:
        Dictionary with combination keys and list of duplicate rules
    """
    seen = defaultdict(list)
    duplicates = {}

    for rule in rules:
        key_parts = [(attr, str(rule.get(attr, 'Unknown'))) for attr in sorted(combination.value)]
        combo_key = tuple(v for _, v in key_parts)
        seen[combo_key].append(rule)
        if len(seen[combo_key]) > 1:
            duplicates[str(combo_key)] = seen[combo_key]

    return duplicates


def _overlaps(mapping: Dict[str, List[str]]) -> Dict[str, List[str]]:
    return {key: techs for key, techs in mapping.items() if len(techs) > 1}


def detect_file_overlaps(rules: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Detect file name patterns claimed by several techs.

    Returns:
        Dictionary with file patterns as keys and the techs that declare them
    """
    files_map = defaultdict(list)
    for rule in rules:
        for pattern in _as_list(rule.get('files')):
            if rule.get('tech') not in files_map[str(pattern)]:
                files_map[str(pattern)].append(rule.get('tech'))
    return _overlaps(files_map)


def detect_extension_overlaps(rules: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    extensions_map = defaultdict(list)
    for rule in rules:
        for extension in _as_list(rule.get('extensions')):
            if rule.get('tech') not in extensions_map[str(extension)]:
                extensions_map[str(extension)].append(rule.get('tech'))
    return _overlaps(extensions_map)


def detect_dependency_overlaps(rules: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Detect dependency patterns (ecosystem + name) declared by several techs.

    Returns:
        Dictionary with "ecosystem:name" keys and the techs that declare them
    """
    dependencies_map = defaultdict(list)
    for rule in rules:
        for dependency in _as_list(rule.get('dependencies')):
            if not isinstance(dependency, dict):
                continue
            key = f"{dependency.get('type')}:{dependency.get('name')}"
            if rule.get('tech') not in dependencies_map[key]:
                dependencies_map[key].append(rule.get('tech'))
    return _overlaps(dependencies_map)


def detect_all_overlaps(rules: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        'file_overlaps': detect_file_overlaps(rules),
        'extension_overlaps': detect_extension_overlaps(rules),
        'dependency_overlaps': detect_dependency_overlaps(rules),
    }


def _print_overlaps(title: str, overlaps: Dict[str, List[str]], verbose: bool) -> None:
    if overlaps:
        print(f"\n⚠ {title.upper()}: {len(overlaps)}")
        if verbose:
            for key, techs in sorted(overlaps.items()):
                print(f"  '{key}' -> {', '.join(techs)}")
    else:
        print(f"\n✓ No {title.lower()}")


def print_validation_report(
    rules: List[Dict[str, Any]],
    combination: CheckCombination = CheckCombination.TECH_ONLY,
    show_files: bool = True,
    verbose: bool = True
) -> int:
    """
    Print a comprehensive validation report of rules.

    Args:
        rules: List of rule dictionaries from YAML
        combination: What combination to check for duplicates
        show_files: Whether to show file/location information
        verbose: Whether to print detailed information

    Returns:
        Number of duplicate tech ids, which the loader would reject
    """
    print("\n" + "="*70)
    print("RULES VALIDATION REPORT")
    print("="*70)
    print(f"\nCheck Combination: {combination}")
    print(f"\nTotal Rules: {len(rules)}")

    duplicates = detect_duplicates_by_combination(rules, combination)
    if duplicates:
        print(f"\nDUPLICATE RULES (by {combination}): {len(duplicates)}")
        for combo_key, rules_list in duplicates.items():
            print(f"\n  {combo_key}")
            for rule in rules_list:
                file_info = f" [{rule.get('__file__', 'unknown')}]" if show_files else ""
                print(f"    - {rule.get('tech')} {rule.get('category')}{file_info}")
    else:
        print(f"\n✓ No duplicate rules by {combination}")

    overlaps = detect_all_overlaps(rules)
    _print_overlaps("File overlaps", overlaps['file_overlaps'], verbose)
    _print_overlaps("Extension overlaps", overlaps['extension_overlaps'], verbose)
    _print_overlaps("Dependency overlaps", overlaps['dependency_overlaps'], verbose)

    categories = defaultdict(int)
    for rule in rules:
        categories[rule.get('category')] += 1
    print("\nStatistics:")
    print(f"  - Categories: {len(categories)}")
    for category, count in sorted(categories.items()):
        print(f"    {category}: {count}")

    print("\n" + "="*70)
    return len(detect_duplicates_by_combination(rules, CheckCombination.TECH_ONLY))


if __name__ == "__main__":
    import sys
    import argparse

    parser = argparse.ArgumentParser(
        description="Validate YAML rules for duplications and overlaps",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check duplicate tech ids (default)
  python -m core.rules_validator

  # Check duplicate display names within a category
  python -m core.rules_validator --combination name_category

  # Only count overlaps, without listing them
  python -m core.rules_validator --no-verbose
        """
    )
    parser.add_argument(
        '--combination',
        default='tech_only',
        choices=['tech_only', 'name_only', 'name_category'],
        help='Combination of attributes to check for duplicates (default: tech_only)'
    )
    parser.add_argument('--rules-dir', default=DEFAULT_TECHS_DIR, help='Directory holding the rule files')
    parser.add_argument('--no-files', action='store_false', dest='show_files', default=True,
                        help='Do not show file information in results')
    parser.add_argument('--no-verbose', action='store_false', dest='verbose', default=True,
                        help='Do not list individual overlaps')
    args = parser.parse_args()

    try:
        raw_rules = load_raw_rules(args.rules_dir)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    errors = print_validation_report(
        raw_rules,
        combination=CheckCombination[args.combination.upper()],
        show_files=args.show_files,
        verbose=args.verbose,
    )
    sys.exit(1 if errors else 0)
