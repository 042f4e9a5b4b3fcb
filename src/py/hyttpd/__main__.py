from .server import run
from .services.files import FileService


def main() -> None:
	"""Serves the current directory on the configured host and port."""
	run(FileService())


if __name__ == "__main__":
	main()

# EOF
