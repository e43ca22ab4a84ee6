from neon_migrate.cli import run

run()
