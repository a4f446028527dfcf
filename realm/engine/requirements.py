"""
Requirement evaluator: boolean expression trees of province trait predicates.
Pure and total; never mutates the province.
"""

from realm.engine.definitions import GroupNode, RequirementNode, TraitNode
from realm.engine.state import Province


def evaluate_requirement(node: RequirementNode | None, province: Province) -> bool:
    """Evaluate a requirement tree against a province. No tree means no requirement."""
    if node is None:
        return True
    if isinstance(node, TraitNode):
        return province.trait(node.category) == node.id
    return _evaluate_group(node, province)


def _evaluate_group(node: GroupNode, province: Province) -> bool:
    results = [evaluate_requirement(child, province) for child in node.children]
    op = node.op

    if op == "and":
        return all(results)
    if op == "or":
        return any(results)
    if op == "not":
        # Vacuously true with no children
        return not any(results)
    if op == "xor":
        return sum(1 for r in results if r) == 1
    if op == "nand":
        return not all(results)
    if op == "nor":
        return not any(results)
    if op == "implies":
        if len(results) < 2:
            return True
        # Children past the second are ignored
        return (not results[0]) or results[1]
    if op == "eq":
        if len(results) < 2:
            return True
        return all(r == results[0] for r in results)
    # Unknown combinator: treated as satisfied
    return True
