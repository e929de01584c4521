"""
Payrexx Checkout -- Shop Database

Pooled mysql-connector access to the host shop's schema. The order service
is the only writer; it touches three tables:

  orders            -- statuses, totals and refunded amount per order
  order_attributes  -- PayrexxInvoiceId and other per-order key/values
  order_notes       -- webhook bodies and status change notes

Every helper borrows one pooled connection and hands it back before
returning. Writes commit on success and roll back on any error.
"""

import contextlib

from mysql.connector import pooling

import config

_pool = None


def get_connection_pool():
  global _pool
  if _pool is None:
    _pool = pooling.MySQLConnectionPool(
      pool_name="payrexx_checkout_pool",
      pool_size=config.MYSQL_POOL_SIZE,
      pool_reset_session=True,
      host=config.MYSQL_HOST,
      port=config.MYSQL_PORT,
      user=config.MYSQL_USER,
      password=config.MYSQL_PASSWORD,
      database=config.MYSQL_DATABASE,
      charset="utf8mb4",
      collation="utf8mb4_unicode_ci",
      autocommit=False,
    )
  return _pool


def get_database_connection():
  """A pooled connection; close() returns it to the pool."""
  return get_connection_pool().get_connection()


@contextlib.contextmanager
def _cursor(dictionary=False, commit=False):
  connection = get_database_connection()
  try:
    cursor = connection.cursor(dictionary=dictionary)
    try:
      yield cursor
      if commit:
        connection.commit()
    except Exception:
      if commit:
        connection.rollback()
      raise
    finally:
      cursor.close()
  finally:
    connection.close()


def execute_query_returning_one_row(query, params=None):
  """First row of a SELECT as a dict, or None."""
  with _cursor(dictionary=True) as cursor:
    cursor.execute(query, params)
    return cursor.fetchone()


def execute_insert_or_update(query, params=None):
  """Run one write and commit it. Returns cursor.rowcount."""
  with _cursor(commit=True) as cursor:
    cursor.execute(query, params)
    return cursor.rowcount


def execute_multiple_statements_in_transaction(statements_with_params):
  """Run (query, params) pairs as one transaction: all of them commit or none do."""
  with _cursor(commit=True) as cursor:
    for query, params in statements_with_params:
      cursor.execute(query, params)
