"""Static checks on how the router domains depend on each other and on shared tables."""

import ast
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
ROUTERS = ROOT / "routers"

DOMAINS = ["auth", "wallet", "rewards", "withdrawals", "giveaways"]
SHARED_ROUTER_MODULES = ("routers.dependencies",)

# model name -> the only domain allowed to import it
OWNED_MODELS = {
    "Account": "auth",
    "CoinWallet": "wallet",
    "TokenWallet": "wallet",
    "LedgerEntry": "wallet",
}


def _parsed_files(domain):
    for path in sorted((ROUTERS / domain).rglob("*.py")):
        yield path, ast.parse(path.read_text(), filename=str(path))


def _absolute_imports(tree):
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield alias.name
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            yield node.module


def _model_names(tree):
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom) and node.module == "models":
            for alias in node.names:
                yield alias.name


def _crosses_domain(module_name, domain):
    if not module_name.startswith("routers."):
        return False
    allowed = (f"routers.{domain}",) + SHARED_ROUTER_MODULES
    return not any(module_name == p or module_name.startswith(p + ".") for p in allowed)


@pytest.mark.parametrize("domain", DOMAINS)
def test_domain_has_api_module(domain):
    assert (ROUTERS / domain / "api.py").is_file()


@pytest.mark.parametrize("domain", DOMAINS)
def test_no_cross_domain_imports(domain):
    """Domains reach each other through core.users, core.ledger and core.referrals only."""
    violations = [
        f"{path.relative_to(ROOT)}: {module_name}"
        for path, tree in _parsed_files(domain)
        for module_name in _absolute_imports(tree)
        if _crosses_domain(module_name, domain)
    ]
    assert not violations, "Cross-domain imports detected:\n" + "\n".join(violations)


@pytest.mark.parametrize("domain", DOMAINS)
def test_owned_models_stay_in_their_domain(domain):
    """
    `Account` belongs to auth; wallets and ledger entries belong to wallet.

    Everyone else passes account ids around and moves balances through core.ledger.
    """
    violations = [
        f"{path.relative_to(ROOT)}: {name}"
        for path, tree in _parsed_files(domain)
        for name in _model_names(tree)
        if OWNED_MODELS.get(name, domain) != domain
    ]
    assert not violations, "Models imported outside their owning domain:\n" + "\n".join(violations)
