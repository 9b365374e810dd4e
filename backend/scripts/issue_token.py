"""Print a signed development token for a user id.
Usage: python scripts/issue_token.py SUBJECT [--hours HOURS]
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from alumni_network.auth import create_access_token
from alumni_network.config import settings

if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('subject', help='value for the token `sub` claim (the user id)')
    parser.add_argument('--hours', type=int, default=None, help='lifetime in hours')
    args = parser.parse_args()
    print(create_access_token(args.subject, settings, expires_hours=args.hours))
