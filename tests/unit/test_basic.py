"""Basic tests to verify project setup."""


def test_import_mgr_assembler():
    """Test that mgr_assembler package can be imported."""
    import mgr_assembler

    assert mgr_assembler.__version__ == "0.1.0"


def test_import_cli():
    """Test that CLI module can be imported."""
    from mgr_assembler import cli

    assert cli.app is not None


def test_import_models():
    """Test that models module can be imported."""
    from mgr_assembler import models

    assert models.ClusterSpec is not None
    assert models.AlertRuleSet is not None
