"""Entry point for 'python -m otpgate'."""

from otpgate.cli import main

if __name__ == "__main__":
    main()
