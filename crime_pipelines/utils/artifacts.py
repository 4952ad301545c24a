# Versioned persistence of intermediate tables, fitted models and GeoJSON layers

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import joblib
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
from rich.console import Console

from config import SCHEMA_VERSION
from crime_pipelines.exceptions import SchemaVersionError

console = Console()

MANIFEST_NAME = "manifest.json"
VERSION_KEY = b"crime_pipelines.schema_version"


class ArtifactStore:
    """
    Directory of pipeline artifacts plus a manifest recording the schema
    version, formats and shape of every table written.
    """

    def __init__(self, root: Path, schema_version: int = SCHEMA_VERSION):
        self.root = Path(root)
        self.schema_version = schema_version

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_NAME

    def read_manifest(self) -> Dict[str, Any]:
        if not self.manifest_path.exists():
            return {"schema_version": self.schema_version, "artifacts": {}}
        with open(self.manifest_path, "r") as f:
            return json.load(f)

    def _write_manifest(self, manifest: Dict[str, Any]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        with open(self.manifest_path, "w") as f:
            json.dump(manifest, f, indent=2, default=str)

    def _register(self, name: str, entry: Dict[str, Any]) -> None:
        manifest = self.read_manifest()
        manifest["schema_version"] = self.schema_version
        entry["schema_version"] = self.schema_version
        entry["written_at"] = datetime.now().isoformat(timespec="seconds")
        manifest["artifacts"][name] = entry
        self._write_manifest(manifest)

    def path_for(self, name: str, fmt: str) -> Path:
        return self.root / f"{name}.{fmt}"

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def save_table(self, name: str, df: pd.DataFrame, formats: Iterable[str] = ("csv",)) -> List[Path]:
        """Write a DataFrame as CSV and/or parquet and record it in the manifest."""
        self.root.mkdir(parents=True, exist_ok=True)
        formats = list(formats)
        written = []

        for fmt in formats:
            path = self.path_for(name, fmt)
            if fmt == "csv":
                df.to_csv(path, index=False)
            elif fmt == "parquet":
                table = pa.Table.from_pandas(df, preserve_index=False)
                metadata = dict(table.schema.metadata or {})
                metadata[VERSION_KEY] = str(self.schema_version).encode()
                table = table.replace_schema_metadata(metadata)
                pq.write_table(table, path, compression="snappy")
            else:
                raise ValueError(f"Unsupported artifact format '{fmt}'")
            written.append(path)

        self._register(
            name,
            {
                "kind": "table",
                "formats": formats,
                "rows": int(len(df)),
                "columns": [str(c) for c in df.columns],
            },
        )
        console.print(f"[green]Saved {name}[/green] [cyan]({', '.join(formats)}; {len(df):,} rows)[/cyan]")
        return written

    def load_table(self, name: str, fmt: Optional[str] = None, parse_dates: Optional[List[str]] = None) -> pd.DataFrame:
        entry = self._entry(name)
        fmt = fmt or ("parquet" if "parquet" in entry.get("formats", []) else "csv")
        path = self.path_for(name, fmt)
        if not path.exists():
            raise FileNotFoundError(f"Artifact file missing: {path}")

        if fmt == "parquet":
            table = pq.read_table(path)
            found = (table.schema.metadata or {}).get(VERSION_KEY)
            found_version = int(found.decode()) if found is not None else None
            if found_version != self.schema_version:
                raise SchemaVersionError(name, found_version, self.schema_version)
            return table.to_pandas()

        return pd.read_csv(path, parse_dates=parse_dates or [])

    # ------------------------------------------------------------------
    # Other artifact kinds
    # ------------------------------------------------------------------

    def save_object(self, name: str, obj: Any) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name, "joblib")
        joblib.dump(obj, path)
        self._register(name, {"kind": "object", "formats": ["joblib"]})
        return path

    def load_object(self, name: str) -> Any:
        self._entry(name)
        return joblib.load(self.path_for(name, "joblib"))

    def save_geojson(self, name: str, gdf) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name, "geojson")
        gdf.to_file(path, driver="GeoJSON")
        self._register(name, {"kind": "geojson", "formats": ["geojson"], "rows": int(len(gdf))})
        return path

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _entry(self, name: str) -> Dict[str, Any]:
        manifest = self.read_manifest()
        entry = manifest["artifacts"].get(name)
        if entry is None:
            raise FileNotFoundError(f"Artifact '{name}' not recorded in {self.manifest_path}")
        found = entry.get("schema_version")
        if found != self.schema_version:
            raise SchemaVersionError(name, found, self.schema_version)
        return entry

    def exists(self, name: str) -> bool:
        """True when the artifact is recorded with the current schema version and its files exist."""
        entry = self.read_manifest()["artifacts"].get(name)
        if entry is None or entry.get("schema_version") != self.schema_version:
            return False
        return all(self.path_for(name, fmt).exists() for fmt in entry.get("formats", []))


__all__ = ["ArtifactStore", "MANIFEST_NAME"]
