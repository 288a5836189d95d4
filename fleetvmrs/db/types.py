from sqlalchemy import BigInteger, Integer

# SQLite only autoincrements INTEGER PRIMARY KEY columns, so BigInteger
# falls back to Integer there to keep the test database usable.
BIGINT = BigInteger().with_variant(Integer, "sqlite")
