from quizengine.config import CFG
from quizengine.db import SessionLocal, ensure_admin

dbs = SessionLocal()
try:
    if ensure_admin(dbs, CFG.admin_username, CFG.admin_password):
        print('admin created')
    else:
        print('admin exists')
finally:
    dbs.close()
