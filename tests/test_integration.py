"""Integration tests for end-to-end CLI workflows."""

from siteledger.cli.main import cli


def _invoke(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])


def _batch_id(output: str) -> str:
    for line in output.split("\n"):
        if "Batch:" in line:
            return line.split("Batch:")[1].strip()
    raise AssertionError(f"No batch ID in output:\n{output}")


def test_full_workflow(cli_runner, temp_db, fixtures_dir):
    """Test seed → entities → preview → commit → re-import → rollback."""
    csv_file = str(fixtures_dir / "export.csv")

    result = _invoke(cli_runner, temp_db, "mapping", "seed")
    assert result.exit_code == 0
    assert "Created 14 default mappings" in result.output

    result = _invoke(cli_runner, temp_db, "entity", "add-payee", "Home Depot")
    assert result.exit_code == 0
    assert "(ID: 1)" in result.output
    assert _invoke(cli_runner, temp_db, "entity", "add-payee", "Lopez Framing LLC").exit_code == 0
    assert _invoke(cli_runner, temp_db, "entity", "add-client", "Acme Properties").exit_code == 0
    assert _invoke(cli_runner, temp_db, "entity", "add-project", "24-001", "--name", "Kitchen").exit_code == 0

    result = _invoke(cli_runner, temp_db, "import", "preview", csv_file)
    assert result.exit_code == 0
    assert "New rows: 4" in result.output
    assert "In-file duplicates: 1" in result.output
    assert "Waste Haulers" in result.output
    assert "Cost of Goods Sold:Dumpster Rental" in result.output
    assert "suggested: materials" in result.output

    result = _invoke(cli_runner, temp_db, "import", "commit", csv_file)
    assert result.exit_code == 0
    assert "Imported: 4 rows" in result.output
    batch_id = _batch_id(result.output)

    result = _invoke(cli_runner, temp_db, "import", "commit", csv_file)
    assert result.exit_code == 0
    assert "Imported: 0 rows" in result.output
    assert "Skipped: 5 duplicates" in result.output

    result = _invoke(cli_runner, temp_db, "batch", "list")
    assert result.exit_code == 0
    assert batch_id in result.output

    result = _invoke(cli_runner, temp_db, "batch", "show", batch_id, "--log")
    assert result.exit_code == 0
    assert "Waste Haulers" in result.output
    assert "auto_matched" in result.output

    result = _invoke(cli_runner, temp_db, "batch", "rollback", batch_id)
    assert result.exit_code == 0
    assert "4 rows reverted" in result.output

    result = _invoke(cli_runner, temp_db, "batch", "rollback", batch_id)
    assert result.exit_code == 0
    assert "0 rows reverted" in result.output


def test_commit_with_assignment(cli_runner, temp_db, fixtures_dir):
    """Test assigning an unresolved name from the command line."""
    _invoke(cli_runner, temp_db, "entity", "add-payee", "Waste Haulers Inc")
    result = _invoke(
        cli_runner,
        temp_db,
        "import",
        "commit",
        str(fixtures_dir / "export.csv"),
        "--assign",
        "payee:Home Depot=1",
    )

    assert result.exit_code == 0
    rows = temp_db.list_batch_rows(_batch_id(result.output))
    home_depot = [r for r in rows if r.source_name == "Home Depot"][0]
    assert home_depot.entity_id == 1


def test_bad_assignment(cli_runner, temp_db, fixtures_dir):
    """Test malformed --assign values."""
    result = _invoke(
        cli_runner, temp_db, "import", "commit", str(fixtures_dir / "export.csv"), "--assign", "Home Depot"
    )
    assert result.exit_code != 0
    assert "TYPE:NAME=ID" in result.output


def test_missing_columns_error(cli_runner, temp_db, fixtures_dir):
    """Test domain errors are rendered."""
    result = _invoke(cli_runner, temp_db, "import", "preview", str(fixtures_dir / "missing_columns.csv"))

    assert result.exit_code == 1
    assert "Error: CSV file missing required columns" in result.output


def test_rollback_unknown_batch(cli_runner, temp_db):
    """Test rollback of a missing batch."""
    result = _invoke(cli_runner, temp_db, "batch", "rollback", "nope")

    assert result.exit_code == 1
    assert "Error: Import batch nope not found" in result.output


def test_mapping_commands(cli_runner, temp_db):
    """Test mapping set, list and deactivate."""
    result = _invoke(cli_runner, temp_db, "mapping", "set", "Cost of Goods Sold:Dumpster Rental", "MATERIALS")
    assert result.exit_code == 0

    result = _invoke(cli_runner, temp_db, "mapping", "list")
    assert "Cost of Goods Sold:Dumpster Rental" in result.output
    assert "materials" in result.output

    result = _invoke(cli_runner, temp_db, "mapping", "deactivate", "Cost of Goods Sold:Dumpster Rental")
    assert result.exit_code == 0
    result = _invoke(cli_runner, temp_db, "mapping", "list")
    assert "No category mappings found." in result.output

    result = _invoke(cli_runner, temp_db, "mapping", "deactivate", "Nope")
    assert result.exit_code == 1


def test_entity_alias_and_list(cli_runner, temp_db):
    """Test alias management from the command line."""
    _invoke(cli_runner, temp_db, "entity", "add-payee", "Home Depot")

    result = _invoke(cli_runner, temp_db, "entity", "add-alias", "payee", "1", "HD", "--match", "starts_with")
    assert result.exit_code == 0

    result = _invoke(cli_runner, temp_db, "entity", "list", "payee")
    assert "Home Depot | Aliases: HD" in result.output

    result = _invoke(cli_runner, temp_db, "entity", "add-alias", "client", "5", "X")
    assert result.exit_code == 1
    assert "Client 5 not found" in result.output


def test_sweep_and_backfill_commands(cli_runner, temp_db, fixtures_dir):
    """Test maintenance commands."""
    result = _invoke(cli_runner, temp_db, "import", "commit", str(fixtures_dir / "export.csv"))
    batch_id = _batch_id(result.output)

    result = _invoke(cli_runner, temp_db, "batch", "sweep", batch_id)
    assert result.exit_code == 0
    assert "Removed 0 duplicate rows" in result.output

    result = _invoke(cli_runner, temp_db, "batch", "backfill-names")
    assert result.exit_code == 0
    assert "Backfilled source names for 0 rows" in result.output
