from pathlib import Path
import shutil

from statlab.config.settings import settings

TEMPLATES = {
    "starter": "starter.yaml",
    "epa": "epa_vehicles.yaml",
    "ohio": "ohio_counties_2022.yaml",
    "remission": "remission.yaml",
}


def generate_analysis_yaml(
    template: str = "starter",
    dest_path: str = "analysis.yaml",
    overwrite: bool = False,
) -> Path:
    """Copy a packaged analysis file to ``dest_path`` as a starting point."""
    template = template.lower()
    if template not in TEMPLATES:
        raise ValueError(f"Invalid template '{template}'. Must be one of {sorted(TEMPLATES)}.")

    src = settings.pipelines_dir / TEMPLATES[template]
    if not src.exists():
        raise FileNotFoundError(f"Template not found at {src}")

    dst = Path(dest_path)
    if dst.exists() and not overwrite:
        raise FileExistsError(f"{dst} already exists. Use --overwrite to replace it.")

    if dst.parent and not dst.parent.exists():
        dst.parent.mkdir(parents=True, exist_ok=True)

    shutil.copyfile(src, dst)

    print(f"✅ Created: {dst.resolve()} from the '{template}' template")
    print("👉 Now edit this YAML to point at your data, cleaning steps and candidate models.")
    return dst
