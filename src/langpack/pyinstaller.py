from pathlib import Path

import PyInstaller.__main__

package_dir = Path(__file__).parent.absolute()
src_dir = package_dir.parent
entry_point = package_dir / "main.py"
executable_name = "vintage-langpack"


def freeze_args() -> list[str]:
    return [
        str(entry_point),
        "--onefile",
        "--clean",
        "--paths", str(src_dir),
        "--collect-submodules", "langpack",
        "--name", executable_name,
    ]


def install():
    PyInstaller.__main__.run(freeze_args())
