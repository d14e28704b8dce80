from .db import DBBase, DBBaseClass, SessionLocal, init_models, get_db, time_now
