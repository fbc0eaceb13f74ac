"""Static metadata describing AssessQt."""

APP_NAME = "AssessQt"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "AssessQt runs timed quizzes and period evaluations for students. "
    "Each question has its own countdown, the whole attempt has a global budget, "
    "and results are shown as soon as the attempt is sealed."
)

HELP_TEXT = (
    "Assessments are authored as .txt files in the data directory using the import format:\n\n"
    "ID: algebra-1\nTITLE: Algebra check\nSTART: 2025-01-10T00:00:00+00:00\n"
    "END: 2025-01-12T00:00:00+00:00\nACTIVE: yes\n\n"
    "Q: What is $2 + 2$?\nA: 3\nB: 4\nC: 5\nCORRECT: B\nTIMELIMIT: 30\n"
    "EXPLAIN B: Two plus two is four."
)
