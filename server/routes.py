from flask import request, current_app
from flask_restful import Resource, Api

from litescan.exceptions import LiteScanError
from litescan.parser.exceptions import LiteScanParseError
from litescan.query.exceptions import QueryError, TableNotFoundError, ColumnNotFoundError
from litescan.storage.exceptions import DatabaseNotFoundError


def init_routes(api: Api):
    # Database
    api.add_resource(DatabaseInfo, '/api/info')

    # Tables
    api.add_resource(TableList, '/api/tables')
    api.add_resource(TableDetail, '/api/tables/<string:table_name>')

    # Queries
    api.add_resource(Query, '/api/query')


def get_manager():
    return current_app.extensions['litescan']


def error_response(e: LiteScanError):
    """Map engine errors to JSON bodies and status codes"""
    if isinstance(e, (TableNotFoundError, ColumnNotFoundError, DatabaseNotFoundError)):
        status = 404
    elif isinstance(e, (LiteScanParseError, QueryError)):
        status = 400
    else:
        status = 500
    return {'error': str(e), 'type': type(e).__name__}, status


class DatabaseInfo(Resource):
    def get(self):
        try:
            return get_manager().get_info()
        except LiteScanError as e:
            return error_response(e)


class TableList(Resource):
    def get(self):
        try:
            return get_manager().list_tables()
        except LiteScanError as e:
            return error_response(e)


class TableDetail(Resource):
    def get(self, table_name):
        try:
            return get_manager().describe_table(table_name)
        except LiteScanError as e:
            return error_response(e)


class Query(Resource):
    def post(self):
        """Run {"sql": ...} or a structured query body"""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return {'error': 'No data provided'}, 400

        manager = get_manager()
        try:
            if 'sql' in data:
                if not isinstance(data['sql'], str):
                    return {'error': "'sql' must be a string"}, 400
                return manager.run_sql(data['sql'])
            if 'table' in data:
                return manager.run_request(data)
        except LiteScanError as e:
            return error_response(e)

        return {'error': "Provide either 'sql' or 'table'"}, 400
